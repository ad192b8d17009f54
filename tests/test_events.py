import unittest

from bass_recall.core.events import DrillEvent, DrillEvents, DrillEventType, EventEmitter


class TestEventEmitter(unittest.TestCase):
    def test_failing_listener_does_not_stop_others(self):
        emitter = EventEmitter()
        calls = []

        def broken(value):
            raise RuntimeError("display bug")

        emitter.on("tick", broken)
        emitter.on("tick", calls.append)
        with self.assertLogs("bass_recall.core.events", level="ERROR"):
            emitter.emit("tick", 1)
        self.assertEqual(calls, [1])

    def test_listener_registered_once(self):
        emitter = EventEmitter()
        calls = []
        emitter.on("tick", calls.append)
        emitter.on("tick", calls.append)
        emitter.emit("tick", 1)
        self.assertEqual(calls, [1])

        emitter.off("tick", calls.append)
        emitter.emit("tick", 2)
        self.assertEqual(calls, [1])


class TestDrillEvents(unittest.TestCase):
    def test_publish_in_order(self):
        events = DrillEvents()
        seen = []
        countdowns = []
        events.on_any(lambda e: seen.append(e.type))
        events.on(DrillEventType.COUNTDOWN_TICK, lambda e: countdowns.append(e.countdown))

        events.publish(
            [
                DrillEvent(DrillEventType.COUNTDOWN_TICK, 0, countdown=3),
                DrillEvent(DrillEventType.ROUND_ACTIVE, 4000, target_midi=40),
                DrillEvent(DrillEventType.COUNTDOWN_TICK, 0, countdown="GO"),
            ]
        )
        self.assertEqual(
            seen,
            [DrillEventType.COUNTDOWN_TICK, DrillEventType.ROUND_ACTIVE, DrillEventType.COUNTDOWN_TICK],
        )
        self.assertEqual(countdowns, [3, "GO"])

        events.clear()
        events.publish([DrillEvent(DrillEventType.ROUND_ACTIVE, 0)])
        self.assertEqual(len(seen), 3)


if __name__ == "__main__":
    unittest.main()
