import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest import mock

from cli.main import build_parser, cmd_quote, cmd_stocks


class CliTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        env = mock.patch.dict(os.environ, {"FINIQ_HOME": self._tmp.name})
        env.start()
        self.addCleanup(env.stop)

    def run_command(self, handler, *argv: str) -> str:
        args = build_parser().parse_args(["--home", self._tmp.name, *argv])
        out = io.StringIO()
        with redirect_stdout(out):
            handler(args)
        return out.getvalue()

    def test_parser(self):
        args = build_parser().parse_args(["watch", "AAPL", "--interval", "500", "--ticks", "3"])
        self.assertEqual(args.command, "watch")
        self.assertEqual(args.interval, 500)
        self.assertEqual(args.ticks, 3)

        args = build_parser().parse_args(["ask", "how", "is", "my", "portfolio"])
        self.assertEqual(args.message, ["how", "is", "my", "portfolio"])

    def test_watch_rejects_non_positive_interval(self):
        for value in ("0", "-5", "fast"):
            with self.assertRaises(SystemExit), redirect_stderr(io.StringIO()):
                build_parser().parse_args(["watch", "AAPL", "--interval", value])

    def test_quote_for_unknown_symbol(self):
        output = self.run_command(cmd_quote, "quote", "zzz")
        self.assertIn("ZZZ: 100.00", output)
        self.assertIn("default seed", output)

    def test_stocks_lists_the_dataset(self):
        output = self.run_command(cmd_stocks, "stocks")
        self.assertIn("AAPL", output)
        self.assertIn("Berkshire Hathaway", output)


if __name__ == "__main__":
    unittest.main()
