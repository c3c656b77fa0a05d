import unittest

from support import recording_logger, release


class TestScopedLogger(unittest.TestCase):
    def setUp(self):
        self.logger, self.handler = recording_logger()

    def tearDown(self):
        release(self.handler)

    def test_scope_context_is_merged(self):
        with self.logger.scope({"corr_id": "l2g_x", "endpoint": "map"}):
            with self.logger.scope({"parent_id": 7}):
                self.logger.info("step", {"n": 1})
        self.logger.info("after")
        ctx = self.handler.contexts("step")[0]
        self.assertEqual(ctx["corr_id"], "l2g_x")
        self.assertEqual(ctx["parent_id"], 7)
        self.assertEqual(ctx["n"], 1)
        self.assertEqual(ctx["source"], "local2global")
        self.assertNotIn("corr_id", self.handler.contexts("after")[0])

    def test_scoped_returns_callback_result(self):
        result = self.logger.scoped({"corr_id": "l2g_y"}, lambda log: log.current_context()["corr_id"])
        self.assertEqual(result, "l2g_y")

    def test_exception_is_reduced(self):
        self.logger.error("boom", {"exception": ValueError("bad value")})
        ctx = self.handler.contexts("boom")[0]
        self.assertEqual(ctx["exception"], {"class": "ValueError", "message": "bad value"})
        self.assertNotIn("trace", ctx)


class TestMutedLogger(unittest.TestCase):
    def test_muted_keeps_errors(self):
        logger, handler = recording_logger(enabled=False)
        try:
            logger.info("quiet")
            logger.warning("quiet.too")
            logger.error("loud")
            self.assertEqual(handler.events(), ["loud"])
        finally:
            release(handler)


if __name__ == "__main__":
    unittest.main()
