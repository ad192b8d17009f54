"""Between-session selection: weak spots and spaced repetition."""
