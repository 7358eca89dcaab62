from decimal import Decimal

from django.test import SimpleTestCase

from common import errors
from common.exceptions import domain_exception_handler
from common.money import money_str, parse_decimal, to_money
from common.roles import HQ_ROLES, NetworkRole


class MoneyTests(SimpleTestCase):
    def test_parse_decimal_accepts_exact_inputs(self):
        self.assertEqual(parse_decimal("12.50"), Decimal("12.50"))
        self.assertEqual(parse_decimal(" 3 "), Decimal("3"))
        self.assertEqual(parse_decimal(7), Decimal("7"))
        self.assertEqual(parse_decimal(Decimal("0.1")), Decimal("0.1"))

    def test_parse_decimal_rejects_floats_and_garbage(self):
        for value in (0.1, True, None, "abc", "NaN", "Infinity", [1]):
            with self.subTest(value=value):
                with self.assertRaises(errors.ValidationError) as ctx:
                    parse_decimal(value, field="quantity")
                self.assertEqual(ctx.exception.details["field"], "quantity")

    def test_to_money_rounds_half_up(self):
        self.assertEqual(to_money(Decimal("0.005")), Decimal("0.01"))
        self.assertEqual(to_money(Decimal("2.344")), Decimal("2.34"))
        self.assertEqual(money_str(Decimal("10")), "10.00")
        self.assertIsNone(money_str(None))


class ErrorPayloadTests(SimpleTestCase):
    def test_invalid_transition_lists_allowed_events(self):
        exc = errors.InvalidTransition("DELIVERED", "cancel", [])
        payload = exc.as_dict()
        self.assertEqual(payload["code"], "invalid_transition")
        self.assertEqual(payload["allowed_events"], [])
        self.assertIn("terminal", payload["error"])
        self.assertFalse(payload["retryable"])

    def test_insufficient_ratio_carries_metric(self):
        exc = errors.InsufficientCoreRatio(Decimal("79.99"), Decimal("80"))
        payload = exc.as_dict()
        self.assertEqual(payload["core_pct"], "79.99")
        self.assertEqual(payload["required_pct"], "80")
        self.assertEqual(exc.http_status, 422)

    def test_handler_renders_status_and_retry_header(self):
        response = domain_exception_handler(errors.LockTimeout(), {"view": None})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response["Retry-After"], "1")
        self.assertTrue(response.data["retryable"])

        response = domain_exception_handler(errors.NotFound("Purchase order 9 not found"), {})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"], "Purchase order 9 not found")

    def test_handler_defers_other_exceptions(self):
        self.assertIsNone(domain_exception_handler(KeyError("x"), {}))


class RoleTests(SimpleTestCase):
    def test_role_sets_match_stored_strings(self):
        self.assertIn("hq_finance", HQ_ROLES)
        self.assertIn(str(NetworkRole.HQ_ADMIN), HQ_ROLES)
        self.assertNotIn("franchisee_owner", HQ_ROLES)
