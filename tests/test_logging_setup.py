import logging
import shutil
import tempfile
import typing
import unittest
from logging.handlers import RotatingFileHandler
from unittest import mock

from strokecoach.logging_setup import setup_logging


class SetupLoggingTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp, ignore_errors=True)
        patcher = mock.patch("strokecoach.logging_setup.settings.LOG_DIR", self.tmp)
        patcher.start()
        self.addCleanup(patcher.stop)

        logger = logging.getLogger("strokecoach")
        saved_handlers, saved_level = list(logger.handlers), logger.level
        logger.handlers = []

        def restore():
            for h in logger.handlers:
                h.close()
            logger.handlers = saved_handlers
            logger.setLevel(saved_level)

        self.addCleanup(restore)

    def test_level_is_optional(self):
        hints = typing.get_type_hints(setup_logging)
        self.assertEqual(hints["level"], typing.Optional[str])

    def test_default_level_and_single_file_handler(self):
        with mock.patch("strokecoach.logging_setup.settings.LOG_LEVEL", "WARNING"):
            logger = setup_logging()
            setup_logging(None)
        self.assertEqual(logger.level, logging.WARNING)
        self.assertEqual(sum(isinstance(h, RotatingFileHandler) for h in logger.handlers), 1)

    def test_explicit_level(self):
        logger = setup_logging("DEBUG")
        self.assertEqual(logger.level, logging.DEBUG)


if __name__ == "__main__":
    unittest.main()
