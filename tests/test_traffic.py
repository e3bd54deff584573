import unittest
from collections import namedtuple
from unittest.mock import patch

from traffic import CounterSample, TrafficHistory, format_bytes, format_usage, sample_counters

NicStats = namedtuple("NicStats", "bytes_sent bytes_recv")


class TrafficHistoryTests(unittest.TestCase):
    def test_no_rate_until_two_samples(self):
        history = TrafficHistory()
        history.add(CounterSample(100, 100, 1.0))

        self.assertIsNone(history.rates())
        self.assertEqual(format_usage(history), "")

    def test_rate_uses_two_most_recent_samples(self):
        history = TrafficHistory()
        history.add(CounterSample(0, 0, 0.0))
        history.add(CounterSample(1000, 500, 1.0))
        history.add(CounterSample(5000, 1500, 3.0))

        self.assertEqual(history.rates(), (2000.0, 500.0))

    def test_counter_reset_does_not_go_negative(self):
        history = TrafficHistory()
        history.add(CounterSample(5000, 5000, 1.0))
        history.add(CounterSample(10, 10, 2.0))

        self.assertEqual(history.rates(), (0.0, 0.0))

    def test_out_of_order_sample_is_ignored(self):
        history = TrafficHistory()
        history.add(CounterSample(100, 100, 2.0))
        history.add(CounterSample(50, 50, 1.0))

        self.assertEqual(len(history.samples), 1)


class FormatTests(unittest.TestCase):
    def test_format_bytes_units(self):
        self.assertEqual(format_bytes(512), "512 B")
        self.assertEqual(format_bytes(1500), "1.50 KB")
        self.assertEqual(format_bytes(2_500_000), "2.50 MB")


class SampleCountersTests(unittest.TestCase):
    def test_filters_interfaces(self):
        stats = {"zt0": NicStats(10, 20), "eth0": NicStats(1, 2)}
        with patch("traffic.psutil.net_io_counters", return_value=stats):
            samples = sample_counters(["zt0"])

        self.assertEqual(list(samples), ["zt0"])
        self.assertEqual((samples["zt0"].rx_bytes, samples["zt0"].tx_bytes), (20, 10))


if __name__ == "__main__":
    unittest.main()
