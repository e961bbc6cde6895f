from csp_evaluator.parser import CSPParser, get_csp_parser, parse_policies
from csp_evaluator.policy import Policy, PolicyCollection
from tests_csp_evaluator import BaseTestCase


class TestCSPParser(BaseTestCase):
    def test_cspparser_1(self):
        parser = CSPParser("default-src ftps: https:")
        parser.load()
        self.assertEqual(
            [Policy({"default-src": ["ftps:", "https:"]})], parser.policies
        )

    def test_cspparser_2(self):
        policies = self.parse(
            "default-src 'none';"
            "script-src 'nonce-unsafefoobar' 'unsafe-eval'   'unsafe-inline' \n"
            "https://example.com/foo.js foo.bar;      "
            "object-src 'none';"
            "img-src 'self' https: data: blob:;"
            "style-src 'self' 'unsafe-inline' 'sha256-1DCfk1NYWuHMfoobarfoobar=';"
            "font-src *;"
            "child-src *.example.com:9090;"
            "upgrade-insecure-requests;\n"
            "report-uri /csp/test"
        )
        self.assertEqual(1, len(policies))
        directives = policies[0].directives
        self.assertEqual(
            [
                "default-src",
                "script-src",
                "object-src",
                "img-src",
                "style-src",
                "font-src",
                "child-src",
                "upgrade-insecure-requests",
                "report-uri",
            ],
            list(directives),
        )
        self.assertEqual(["'none'"], directives["default-src"])
        self.assertEqual(
            [
                "'nonce-unsafefoobar'",
                "'unsafe-eval'",
                "'unsafe-inline'",
                "https://example.com/foo.js",
                "foo.bar",
            ],
            directives["script-src"],
        )
        self.assertEqual(["'self'", "https:", "data:", "blob:"], directives["img-src"])
        self.assertEqual(["*.example.com:9090"], directives["child-src"])
        self.assertEqual([], directives["upgrade-insecure-requests"])
        self.assertEqual(["/csp/test"], directives["report-uri"])

    def test_duplicate_directives(self):
        policies = self.parse(
            "default-src 'none'; object-src 'none'; DEFAULT-SRC 'self'; object-src foo.bar"
        )
        self.assertEqual(
            {"default-src": ["'none'"], "object-src": ["'none'"]},
            policies[0].directives,
        )

    def test_mixed_case_keywords(self):
        policies = self.parse(
            "DEFAULT-src 'NONE'; img-src 'self' HTTPS: Example.com/CaseSensitive"
        )
        self.assertEqual(
            {
                "default-src": ["'none'"],
                "img-src": ["'self'", "https:", "Example.com/CaseSensitive"],
            },
            policies[0].directives,
        )

    def test_duplicate_values(self):
        policies = self.parse("script-src 'self' 'SELF' foo.bar foo.bar Foo.bar")
        self.assertEqual(
            ["'self'", "foo.bar", "Foo.bar"], policies[0].directives["script-src"]
        )

    def test_skipped_tokens(self):
        policies = self.parse(";; script-src 'self'; img-src ☃.com ; ")
        self.assertEqual({"script-src": ["'self'"]}, policies[0].directives)

    def test_multiple_headers(self):
        policies = self.parse(["default-src 'self'", "script-src 'none'"])
        self.assertIsInstance(policies, PolicyCollection)
        self.assertEqual(
            [
                Policy({"default-src": ["'self'"]}),
                Policy({"script-src": ["'none'"]}),
            ],
            policies,
        )

    def test_legacy_comma_separated_policies(self):
        policies = self.parse("default-src 'none', default-src 'nonce-foobar'")
        self.assertEqual(2, len(policies))
        self.assertEqual(["'none'"], policies[0].directives["default-src"])
        self.assertEqual(["'nonce-foobar'"], policies[1].directives["default-src"])

    def test_legacy_comma_separated_in_multiple_headers(self):
        policies = self.parse(
            [
                "default-src 'none', script-src 'nonce-foobar'",
                "object-src 'none'",
            ]
        )
        self.assertEqual(
            [
                {"default-src": ["'none'"]},
                {"script-src": ["'nonce-foobar'"]},
                {"object-src": ["'none'"]},
            ],
            [x.directives for x in policies],
        )

    def test_round_trip(self):
        headers = [
            "default-src 'self' http://example.com http://example.net; "
            "connect-src 'none'; ",
            "connect-src http://example.com/; script-src http://example.com/; ",
        ]
        policies = self.parse(headers)
        self.assertEqual(headers, policies.convert_to_strings())
        self.assertEqual(policies, parse_policies(policies.convert_to_string()))

    def test_round_trip_whitespaces(self):
        policies = self.parse("  script-src   'NONE'  ;upgrade-insecure-requests")
        self.assertEqual(
            "script-src 'none'; upgrade-insecure-requests; ",
            policies.convert_to_string(),
        )
        self.assertEqual(policies, self.parse(policies.convert_to_string()))

    def test_get_csp_parser_cached(self):
        parser = get_csp_parser(["script-src 'self'"])
        self.assertIs(parser, get_csp_parser("script-src 'self'"))
        self.assertEqual([Policy({"script-src": ["'self'"]})], parser.policies)

    def test_control_characters_are_not_whitespace(self):
        policies = self.parse("script-src\x1cfoo.bar; img-src a\tb\x85c")
        self.assertEqual(
            {"script-src\x1cfoo.bar": [], "img-src": ["a", "b\x85c"]},
            policies[0].directives,
        )

    def test_non_breaking_space_separator(self):
        policies = self.parse("script-src\xa0'self'\xa0; \x0bobject-src 'none'")
        self.assertEqual(
            {"script-src": ["'self'"], "object-src": ["'none'"]},
            policies[0].directives,
        )
