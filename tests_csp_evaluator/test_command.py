from io import StringIO

from django.core.management import CommandError, call_command

from tests_csp_evaluator import BaseTestCase


class TestEvaluateCSPCommand(BaseTestCase):
    def call(self, *args, **kwargs) -> list:
        out = StringIO()
        call_command("evaluate_csp", *args, stdout=out, no_color=True, **kwargs)
        return out.getvalue().splitlines()

    def test_strict_policy(self):
        lines = self.call("script-src 'none'; object-src 'none'; base-uri 'none'")
        self.assertEqual(2, len(lines))
        self.assertTrue(lines[0].startswith("[INFO] require-trusted-types-for: "))
        self.assertEqual("Highest severity: INFO", lines[1])

    def test_sort(self):
        policy = "script-src 'unsafe-inline'"
        lines = self.call(policy)
        self.assertTrue(lines[0].startswith("[INFO] require-trusted-types-for: "))
        lines = self.call(policy, sort=True)
        self.assertTrue(lines[0].startswith("[HIGH] script-src 'unsafe-inline': "))
        self.assertTrue(lines[1].startswith("[HIGH] object-src: "))
        self.assertEqual("Highest severity: HIGH", lines[-1])

    def test_several_headers(self):
        lines = self.call(
            "script-src 'nonce-12345678' 'unsafe-inline'",
            "object-src 'none'; base-uri 'none'",
            "--csp-version",
            "1",
        )
        self.assertIn("[HIGH] script-src 'unsafe-inline': ", "\n".join(lines))
        lines = self.call(
            "script-src 'nonce-12345678' 'unsafe-inline'",
            "object-src 'none'; base-uri 'none'",
            csp_version=3,
        )
        self.assertTrue(lines[0].startswith("[NONE] script-src 'unsafe-inline': "))

    def test_invalid_version(self):
        self.assertRaises(
            CommandError, self.call, "script-src 'none'", csp_version=4
        )
