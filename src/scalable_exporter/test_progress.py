import io
import unittest

from .progress import ConsoleProgressBar, LoggingProgress, NullProgress, percentage


class TestProgress(unittest.TestCase):

    def test_percentage(self):
        self.assertEqual(percentage(1, 3), 33)
        self.assertEqual(percentage(3, 3), 100)
        self.assertEqual(percentage(0, 0), 100)

    def test_console_bar_draws_and_clears(self):
        stream = io.StringIO()
        bar = ConsoleProgressBar(stream=stream, width=10)
        bar.start(4)
        bar.update(2, 4)
        self.assertIn("[#####-----]  50%", stream.getvalue())
        bar.stop()
        self.assertTrue(stream.getvalue().endswith("\r"))
        # Updates after stop are ignored
        length = len(stream.getvalue())
        bar.update(3, 4)
        self.assertEqual(len(stream.getvalue()), length)

    def test_logging_progress_reports_each_step_once(self):
        progress = LoggingProgress(step=50)
        with self.assertLogs("scalable_exporter", level="INFO") as logs:
            progress.start(4)
            for done in range(1, 5):
                progress.update(done, 4)
            progress.stop()
        messages = [m for m in logs.output if "/4 (" in m]
        self.assertEqual(len(messages), 3)  # 25%, 50%, 100%

    def test_null_progress(self):
        progress = NullProgress()
        progress.start(1)
        progress.update(1, 1)
        progress.stop()


if __name__ == '__main__':
    unittest.main()
