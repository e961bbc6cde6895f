from csp_evaluator.csp import Directive, Keyword, Version
from csp_evaluator.finding import Severity, Type
from csp_evaluator.policy import Policy
from tests_csp_evaluator import BaseTestCase

TEST_CSP = (
    "default-src 'unsafe-inline' 'strict-dynamic' 'nonce-123' 'sha256-foobar' "
    "'self'; report-to foo.bar; worker-src *; manifest-src *"
)


class TestPolicy(BaseTestCase):
    def test_convert_to_string(self):
        csp = (
            "default-src 'none'; "
            "script-src 'nonce-unsafefoobar' 'unsafe-eval' 'unsafe-inline' "
            "https://example.com/foo.js foo.bar; "
            "img-src 'self' https: data: blob:; "
        )
        self.assertEqual(csp, self.parse(csp)[0].convert_to_string())

    def test_effective_directive(self):
        policy = self.parse("default-src 'none'; script-src 'self'")[0]
        self.assertEqual("default-src", policy.get_effective_directive("style-src"))
        self.assertEqual("script-src", policy.get_effective_directive("script-src"))
        # document and navigation directives never fall back
        self.assertEqual("base-uri", policy.get_effective_directive("base-uri"))
        self.assertEqual("form-action", policy.get_effective_directive("form-action"))

    def test_effective_directives(self):
        policy = self.parse("default-src 'none'; object-src 'none'")[0]
        self.assertEqual(
            ["default-src", "object-src", "base-uri"],
            policy.get_effective_directives(
                ["script-src", "object-src", "style-src", "base-uri"]
            ),
        )

    def test_script_predicates(self):
        policy = self.parse("default-src 'nonce-123' 'strict-dynamic'")[0]
        self.assertTrue(policy.has_script_nonces)
        self.assertFalse(policy.has_script_hashes)
        self.assertTrue(policy.has_strict_dynamic)
        policy = self.parse("default-src 'nonce-123'; script-src 'sha256-123'")[0]
        self.assertFalse(policy.has_script_nonces)
        self.assertTrue(policy.has_script_hashes)
        self.assertFalse(policy.has_strict_dynamic)

    def test_clone(self):
        policy = self.parse("script-src 'self'")[0]
        clone = policy.clone()
        self.assertEqual(policy, clone)
        clone.directives["script-src"].append("foo.bar")
        self.assertEqual(["'self'"], policy.directives["script-src"])

    def test_equality_uses_directive_order(self):
        self.assertNotEqual(
            Policy({"a": [], "b": []}), Policy({"b": [], "a": []})
        )


class TestEffectivePolicies(BaseTestCase):
    def test_version_1(self):
        policies = self.parse(TEST_CSP)
        effective, findings = policies.get_effective_policies(Version.CSP1)
        self.assertEqual([], findings)
        directives = effective[0].directives
        self.assertEqual(["'unsafe-inline'", "'self'"], directives["default-src"])
        for directive in ("report-to", "worker-src", "manifest-src"):
            self.assertNotIn(directive, directives)

    def test_version_2(self):
        policies = self.parse(TEST_CSP)
        effective, findings = policies.get_effective_policies(2)
        self.assertEqual(1, len(findings))
        self.assertEqual(Keyword.UNSAFE_INLINE, findings[0].value)
        self.assertEqual(Type.IGNORED, findings[0].type)
        self.assertEqual(Severity.NONE, findings[0].severity)
        self.assertEqual(Directive.DEFAULT_SRC, findings[0].directive)
        directives = effective[0].directives
        self.assertEqual(
            ["'nonce-123'", "'sha256-foobar'", "'self'"], directives["default-src"]
        )
        for directive in ("report-to", "worker-src", "manifest-src"):
            self.assertNotIn(directive, directives)

    def test_version_3(self):
        policies = self.parse(TEST_CSP)
        effective, findings = policies.get_effective_policies(Version.CSP3)
        self.assertEqual(3, len(findings))
        for finding in findings:
            self.assertEqual(Type.IGNORED, finding.type)
            self.assertEqual(Severity.NONE, finding.severity)
            self.assertEqual(Directive.DEFAULT_SRC, finding.directive)
        directives = effective[0].directives
        self.assertEqual(
            ["'strict-dynamic'", "'nonce-123'", "'sha256-foobar'"],
            directives["default-src"],
        )
        self.assertEqual(["foo.bar"], directives["report-to"])
        self.assertEqual(["*"], directives["worker-src"])
        self.assertEqual(["*"], directives["manifest-src"])

    def test_strict_dynamic_ignores_allowlist(self):
        policies = self.parse(
            "script-src 'nonce-12345678' 'strict-dynamic' https: foo.bar 'self'"
        )
        effective, findings = policies.get_effective_policies(3)
        self.assertEqual(
            ["'nonce-12345678'", "'strict-dynamic'"],
            effective[0].directives["script-src"],
        )
        self.assertEqual(["https:", "foo.bar", "'self'"], [x.value for x in findings])

    def test_trusted_types_removed_before_csp3(self):
        policies = self.parse(
            "script-src 'self'; trusted-types foo; require-trusted-types-for 'script'"
        )
        effective, __ = policies.get_effective_policies(2)
        self.assertEqual({"script-src": ["'self'"]}, effective[0].directives)
        effective, __ = policies.get_effective_policies(3)
        self.assertEqual(3, len(effective[0].directives))

    def test_original_not_modified(self):
        policies = self.parse(TEST_CSP)
        before = policies.convert_to_strings()
        for version in (1, 2, 3):
            policies.get_effective_policies(version)
        self.assertEqual(before, policies.convert_to_strings())

    def test_per_policy_effective_directive(self):
        policies = self.parse(
            ["script-src 'unsafe-inline' 'nonce-foobar'", "default-src 'unsafe-inline'"]
        )
        effective, findings = policies.get_effective_policies(3)
        self.assertEqual(["'nonce-foobar'"], effective[0].directives["script-src"])
        self.assertEqual(["'unsafe-inline'"], effective[1].directives["default-src"])
        self.assertEqual(1, len(findings))
        self.assertEqual("script-src", findings[0].directive)

    def test_invalid_version(self):
        policies = self.parse("script-src 'self'")
        for version in (0, 4, "3"):
            with self.assertRaises(ValueError):
                policies.get_effective_policies(version)

    def test_invalid_version_single_policy(self):
        policy = self.parse("script-src 'unsafe-inline' 'nonce-12345678'")[0]
        for version in (0, 4, 7):
            with self.assertRaises(ValueError):
                policy.get_effective_policy(version)
        effective, findings = policy.get_effective_policy(Version.CSP2)
        self.assertEqual(["'nonce-12345678'"], effective.directives["script-src"])
        self.assertEqual(1, len(findings))
