import threading
import unittest

from giveaway.randomness import LocalRandomnessProvider, RandomnessProvider


class LocalRandomnessProviderTests(unittest.TestCase):
    def test_requests_are_queued_not_delivered(self):
        calls = []
        provider = LocalRandomnessProvider(callback=lambda rid, value: calls.append(rid))

        first = provider.request_randomness("a")
        second = provider.request_randomness("b")

        self.assertNotEqual(first, second)
        self.assertEqual(provider.pending_count, 2)
        self.assertEqual(calls, [])
        self.assertIsInstance(provider, RandomnessProvider)

    def test_deliver_pending_in_request_order(self):
        calls = []
        values = iter([11, 22])
        provider = LocalRandomnessProvider(value_source=lambda: next(values))
        provider.bind(lambda rid, value: calls.append((rid, value)))

        first = provider.request_randomness("a")
        second = provider.request_randomness("b")

        self.assertEqual(provider.deliver_pending(), 2)
        self.assertEqual(calls, [(first, 11), (second, 22)])
        self.assertEqual(provider.deliver_pending(), 0)

    def test_default_values_are_256_bit(self):
        values = []
        provider = LocalRandomnessProvider(callback=lambda rid, value: values.append(value))
        provider.request_randomness("a")
        provider.deliver_pending()
        self.assertEqual(len(values), 1)
        self.assertGreaterEqual(values[0], 0)
        self.assertLess(values[0], 2**256)

    def test_delivery_without_callback_raises(self):
        provider = LocalRandomnessProvider()
        provider.request_randomness("a")
        with self.assertRaises(RuntimeError):
            provider.deliver_pending()

    def test_worker_survives_failing_callback(self):
        delivered = threading.Event()
        seen = []

        def callback(request_id, value):
            if not seen:
                seen.append(request_id)
                raise RuntimeError("first delivery fails")
            seen.append(request_id)
            delivered.set()

        provider = LocalRandomnessProvider(callback=callback, value_source=lambda: 1)
        provider.start(poll_interval=0.01)
        try:
            with self.assertLogs("giveaway.randomness.local", level="ERROR"):
                provider.request_randomness("a")
                provider.request_randomness("b")
                self.assertTrue(delivered.wait(timeout=5))
        finally:
            provider.stop(timeout=5)
        self.assertEqual(len(seen), 2)


if __name__ == "__main__":
    unittest.main()
