import threading
import unittest

from ev_charging.locks import KeyedLocks, station_key


class TestKeyedLocks(unittest.TestCase):

    def test_same_key_is_serialized(self):
        locks = KeyedLocks()
        order = []

        def worker():
            with locks.hold(station_key("s-1")):
                order.append("worker")

        with locks.hold(station_key("s-1")):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join(timeout=0.2)
            self.assertTrue(thread.is_alive())
            order.append("main")

        thread.join(timeout=2)
        self.assertEqual(order, ["main", "worker"])

    def test_different_keys_do_not_block(self):
        locks = KeyedLocks()
        done = []

        def worker():
            with locks.hold(station_key("s-2")):
                done.append(True)

        with locks.hold(station_key("s-1")):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join(timeout=2)
            self.assertFalse(thread.is_alive())

        self.assertEqual(done, [True])

    def test_each_key_keeps_a_single_lock(self):
        locks = KeyedLocks()
        for _ in range(3):
            with locks.hold(station_key("s-1")):
                pass
        with locks.hold(station_key("s-2")):
            pass

        self.assertEqual(sorted(locks._locks), ["station:s-1", "station:s-2"])


if __name__ == "__main__":
    unittest.main()
