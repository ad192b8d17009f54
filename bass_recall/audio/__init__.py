"""Audio input and output collaborators. Importing submodules may need PortAudio."""
