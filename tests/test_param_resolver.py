import unittest

from iperf3_exporter.core.errors import InvalidRequest
from iperf3_exporter.core.param_resolver import (
    SCRAPE_TIMEOUT_HEADER,
    resolve_probe_config,
    resolve_timeout,
)


def resolve(params=None, headers=None, default_timeout=30.0):
    return resolve_probe_config(params or {}, headers or {}, default_timeout)


class TestResolveProbeConfig(unittest.TestCase):
    def test_defaults(self):
        config = resolve({"target": "iperf.example.net"})
        self.assertEqual(config.target, "iperf.example.net")
        self.assertEqual(config.port, 5201)
        self.assertEqual(config.thread, 1)
        self.assertEqual(config.period, 5.0)
        self.assertEqual(config.timeout, 30.0)

    def test_missing_or_empty_target(self):
        for params in [{}, {"target": ""}]:
            with self.assertRaises(InvalidRequest) as ctx:
                resolve(params)
            self.assertEqual(ctx.exception.status_code, 400)
            self.assertIn("target", ctx.exception.message)

    def test_explicit_values(self):
        config = resolve(
            {"target": "h", "port": "5202", "thread": "4", "period": "1m"}
        )
        self.assertEqual(config.port, 5202)
        self.assertEqual(config.thread, 4)
        self.assertEqual(config.period, 60.0)

    def test_port_not_integer(self):
        with self.assertRaises(InvalidRequest) as ctx:
            resolve({"target": "h", "port": "abc"})
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertIn("'port' parameter must be an integer", ctx.exception.message)

    def test_port_zero_defaults(self):
        self.assertEqual(resolve({"target": "h", "port": "0"}).port, 5201)

    def test_thread_not_integer(self):
        with self.assertRaises(InvalidRequest) as ctx:
            resolve({"target": "h", "thread": "1.5"})
        self.assertIn("'thread' parameter must be an integer", ctx.exception.message)

    def test_non_positive_thread_defaults_to_one(self):
        self.assertEqual(resolve({"target": "h", "thread": "0"}).thread, 1)
        self.assertEqual(resolve({"target": "h", "thread": "-3"}).thread, 1)

    def test_period_not_duration(self):
        with self.assertRaises(InvalidRequest) as ctx:
            resolve({"target": "h", "period": "ten"})
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertIn("'period' parameter must be a duration", ctx.exception.message)

    def test_non_ascii_digits_rejected(self):
        for params in [
            {"target": "h", "port": "\uff15\uff12\uff10\uff11"},
            {"target": "h", "thread": "\u0663"},
            {"target": "h", "period": "\u0665s"},
        ]:
            with self.subTest(params=params):
                with self.assertRaises(InvalidRequest) as ctx:
                    resolve(params)
                self.assertEqual(ctx.exception.status_code, 400)

    def test_zero_period_defaults(self):
        self.assertEqual(resolve({"target": "h", "period": "0s"}).period, 5.0)

    def test_unparsable_timeout_header_is_server_error(self):
        with self.assertRaises(InvalidRequest) as ctx:
            resolve({"target": "h"}, {SCRAPE_TIMEOUT_HEADER: "notanumber"})
        self.assertEqual(ctx.exception.status_code, 500)

    def test_header_timeout_used(self):
        config = resolve({"target": "h"}, {SCRAPE_TIMEOUT_HEADER: "9.5"})
        self.assertEqual(config.timeout, 9.5)


class TestResolveTimeout(unittest.TestCase):
    def test_header_takes_precedence(self):
        self.assertEqual(resolve_timeout("12", 20.0), 12.0)

    def test_config_default_when_no_header(self):
        self.assertEqual(resolve_timeout(None, 20.0), 20.0)
        self.assertEqual(resolve_timeout("", 20.0), 20.0)
        self.assertEqual(resolve_timeout("0", 20.0), 20.0)

    def test_ceiling_when_nothing_configured(self):
        self.assertEqual(resolve_timeout(None, 0.0), 30.0)

    def test_clamped_to_ceiling(self):
        self.assertEqual(resolve_timeout("45", 10.0), 30.0)
        self.assertEqual(resolve_timeout(None, 45.0), 30.0)
        self.assertEqual(resolve_timeout("inf", 10.0), 30.0)

    def test_negative_header_wins(self):
        self.assertEqual(resolve_timeout("-5", 10.0), -5.0)

    def test_nan_header_falls_back(self):
        self.assertEqual(resolve_timeout("nan", 10.0), 10.0)

    def test_float_forms_accepted(self):
        self.assertEqual(resolve_timeout("1e1", 0.0), 10.0)
        self.assertEqual(resolve_timeout(".5", 0.0), 0.5)
        self.assertEqual(resolve_timeout("+7.", 0.0), 7.0)
        self.assertEqual(resolve_timeout("Infinity", 0.0), 30.0)

    def test_loose_float_forms_rejected(self):
        for value in ["1_0", " 5 ", "5 ", "\u0665", "0x10", "5s"]:
            with self.subTest(value=value):
                with self.assertRaises(InvalidRequest) as ctx:
                    resolve_timeout(value, 10.0)
                self.assertEqual(ctx.exception.status_code, 500)


if __name__ == "__main__":
    unittest.main()
