import unittest
from datetime import date, timedelta

from market.dataset import MarketDataset, normalize_symbol
from market.history import MIN_VOLUME, VOLUME_RANGE, generate_history
from market.random_source import ScriptedRandomSource, SystemRandomSource

END = date(2024, 1, 31)


class GenerateHistoryTests(unittest.TestCase):
    def test_returns_days_plus_one_bars_oldest_first(self):
        bars = generate_history(100.0, SystemRandomSource(1), days=30, end=END)

        self.assertEqual(len(bars), 31)
        self.assertEqual(bars[0].date, END - timedelta(days=30))
        self.assertEqual(bars[-1].date, END)
        dates = [bar.date for bar in bars]
        self.assertEqual(dates, sorted(dates))

    def test_first_bar_opens_at_base_price(self):
        bars = generate_history(189.45, SystemRandomSource(3), days=5, end=END)
        self.assertEqual(bars[0].open, 189.45)

    def test_bars_are_internally_consistent(self):
        bars = generate_history(250.0, SystemRandomSource(11), days=60, end=END)

        for bar in bars:
            self.assertGreaterEqual(bar.high, max(bar.open, bar.close))
            self.assertLessEqual(bar.low, min(bar.open, bar.close))
            self.assertGreaterEqual(bar.volume, MIN_VOLUME)
            self.assertLess(bar.volume, MIN_VOLUME + VOLUME_RANGE + 1)
            self.assertIsInstance(bar.volume, int)

        for prev, bar in zip(bars, bars[1:]):
            self.assertEqual(bar.open, prev.close)
            self.assertGreaterEqual(bar.close, prev.close * 0.5 - 0.01)

    def test_scripted_draws_give_exact_bar(self):
        # A draw equal to the bias means no change; 0.5 on the wick and volume draws.
        bars = generate_history(100.0, ScriptedRandomSource([0.5]), days=0, end=END, drift_bias=0.5)

        self.assertEqual(len(bars), 1)
        bar = bars[0]
        self.assertEqual(bar.open, 100.0)
        self.assertEqual(bar.close, 100.0)
        self.assertEqual(bar.high, 100.75)
        self.assertEqual(bar.low, 99.25)
        self.assertEqual(bar.volume, 35_000_000)

    def test_close_never_drops_below_half_previous(self):
        # Drawing 0 with a huge amplitude would otherwise go negative.
        bars = generate_history(100.0, ScriptedRandomSource([0.0]), days=3, end=END, amplitude=5.0)
        closes = [bar.close for bar in bars]
        self.assertEqual(closes, [50.0, 25.0, 12.5, 6.25])

    def test_negative_days_rejected(self):
        with self.assertRaises(ValueError):
            generate_history(100.0, SystemRandomSource(), days=-1)


class MarketDatasetTests(unittest.TestCase):
    def setUp(self):
        self.dataset = MarketDataset(rng=SystemRandomSource(42), end=END)

    def test_contains_the_demo_symbols(self):
        self.assertEqual(len(self.dataset), 12)
        self.assertIn("AAPL", self.dataset)
        self.assertIn(" aapl ", self.dataset)
        self.assertNotIn("ZZZ", self.dataset)

    def test_history_is_built_once(self):
        stock = self.dataset.get("msft")
        self.assertIs(stock, self.dataset.get("MSFT"))
        self.assertEqual(len(stock.history), 31)
        self.assertEqual(self.dataset.last_close("MSFT"), stock.history[-1].close)

    def test_unknown_symbol_lookups(self):
        self.assertIsNone(self.dataset.get("ZZZ"))
        self.assertIsNone(self.dataset.last_close("ZZZ"))
        self.assertIsNone(self.dataset.sector_of("ZZZ"))

    def test_summaries_skip_history(self):
        summaries = self.dataset.summaries()
        self.assertEqual([s.symbol for s in summaries], self.dataset.symbols)
        self.assertNotIn("history", summaries[0].model_dump())

    def test_normalize_symbol(self):
        self.assertEqual(normalize_symbol("  nvda "), "NVDA")
        self.assertEqual(normalize_symbol(""), "")


if __name__ == "__main__":
    unittest.main()
