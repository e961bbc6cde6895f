from csp_evaluator.matching import get_scheme_free_url, match_wildcard_urls
from tests_csp_evaluator import BaseTestCase

URLS = [
    "//www.google.com/jsapi",
    "//www.google.com/foo/bar",
    "//ajax.googleapis.com/ajax/services/feed/load",
    "//googletagmanager.com/gtm/js",
]


class TestWildcardMatching(BaseTestCase):
    def test_get_scheme_free_url(self):
        self.assertEqual("foo.bar/path", get_scheme_free_url("https://foo.bar/path"))
        self.assertEqual("foo.bar", get_scheme_free_url("//foo.bar"))
        self.assertEqual("*", get_scheme_free_url("http://*"))
        self.assertEqual("*", get_scheme_free_url("//*"))
        self.assertEqual("https:", get_scheme_free_url("https:"))
        self.assertEqual("foo.bar", get_scheme_free_url("chrome-extension://foo.bar"))

    def test_match_subdomain_wildcard(self):
        match = match_wildcard_urls("//*.google.com", URLS)
        self.assertEqual("www.google.com", match.hostname)
        self.assertEqual("/jsapi", match.path)

    def test_match_exact_host(self):
        match = match_wildcard_urls("//googletagmanager.com", URLS)
        self.assertEqual("googletagmanager.com", match.hostname)

    def test_no_wildcard_different_host(self):
        self.assertIsNone(match_wildcard_urls("//google.com", URLS))
        self.assertIsNone(match_wildcard_urls("//oogle.com", ["//www.google.com/a"]))

    def test_wildcard_does_not_match_parent_domain(self):
        self.assertIsNone(match_wildcard_urls("//*.googletagmanager.com", URLS))

    def test_host_case_insensitive(self):
        match = match_wildcard_urls("//WWW.Google.COM", URLS)
        self.assertEqual("www.google.com", match.hostname)

    def test_wrong_path(self):
        self.assertIsNone(match_wildcard_urls("//*.google.com/wrongPath", URLS))

    def test_exact_path(self):
        match = match_wildcard_urls("//www.google.com/foo/bar", URLS)
        self.assertEqual("/foo/bar", match.path)
        self.assertIsNone(match_wildcard_urls("//www.google.com/foo", URLS))

    def test_directory_path(self):
        match = match_wildcard_urls("//www.google.com/foo/", URLS)
        self.assertEqual("/foo/bar", match.path)
        match = match_wildcard_urls("//*.googleapis.com/ajax/", URLS)
        self.assertEqual("ajax.googleapis.com", match.hostname)

    def test_first_match_wins(self):
        match = match_wildcard_urls("//www.google.com/", URLS)
        self.assertEqual("/jsapi", match.path)
        match = match_wildcard_urls("//www.google.com/", list(reversed(URLS)))
        self.assertEqual("/foo/bar", match.path)

    def test_port_is_ignored(self):
        match = match_wildcard_urls("//www.google.com:443", URLS)
        self.assertEqual("www.google.com", match.hostname)
