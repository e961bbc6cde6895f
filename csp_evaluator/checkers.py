# ##############################################################################
#  This file is part of csp_evaluator                                          #
#                                                                              #
#  Copyright (C) 2020 Matthieu Gallet <github@19pouces.net>                    #
#  All Rights Reserved                                                         #
#                                                                              #
#  You may use, distribute and modify this code under the                      #
#  terms of the (BSD-like) CeCILL-B license.                                   #
#                                                                              #
#  You should have received a copy of the CeCILL-B license with                #
#  this file. If not, please visit:                                            #
#  https://cecill.info/licences/Licence_CeCILL-B_V1-en.txt (English)           #
#  or https://cecill.info/licences/Licence_CeCILL-B_V1-fr.txt (French)         #
#                                                                              #
# ##############################################################################
"""
Checks run on a collection of policies.

Each check takes a PolicyCollection and returns an unordered list of
findings. Parser checks and strict CSP checks are meant for the policies as
parsed, security checks for the effective policies of a given CSP version
(e.g. 'unsafe-inline' is ignored by CSP2 user agents when a nonce is present).
"""
import ipaddress
import re
from typing import Iterator, List, Optional, Tuple, Union
from urllib.parse import SplitResult, urlsplit

from django.utils.translation import gettext as _

from csp_evaluator.bypasses import DEFAULT_BYPASSES, BypassLists
from csp_evaluator.csp import (
    Directive,
    Keyword,
    TrustedTypesSink,
    all_keywords,
    is_directive,
    is_hash,
    is_keyword,
    is_nonce,
    is_url_scheme,
    nonce_re,
)
from csp_evaluator.finding import Finding, Severity, Type
from csp_evaluator.matching import get_scheme_free_url, match_wildcard_urls
from csp_evaluator.policy import Policy, PolicyCollection

DIRECTIVES_CAUSING_XSS = (
    Directive.SCRIPT_SRC,
    Directive.OBJECT_SRC,
    Directive.BASE_URI,
)
URL_SCHEMES_CAUSING_XSS = ("data:", "http:", "https:")
keywords_without_ticks = {x.replace("'", "") for x in all_keywords}
hash_prefix_re = re.compile(r"^(sha256|sha384|sha512)-")


def iter_directives(policies: PolicyCollection) -> Iterator[Tuple[str, List[str]]]:
    """All (directive, values) pairs of all policies"""
    for policy in policies:
        yield from policy.directives.items()


def parse_source(value: str) -> Optional[SplitResult]:
    try:
        return urlsplit("//" + get_scheme_free_url(value))
    except ValueError:
        return None


def match_source(value: str, urls) -> Optional[SplitResult]:
    try:
        return match_wildcard_urls("//" + get_scheme_free_url(value), urls)
    except ValueError:
        return None


def get_ip_address(
    value: str,
) -> Optional[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]]:
    url = parse_source(value)
    if url is None or not url.hostname:
        return None
    try:
        return ipaddress.ip_address(url.hostname)
    except ValueError:
        return None


# Parser checks


def check_unknown_directive(policies: PolicyCollection) -> List[Finding]:
    """Flag directive names that are not CSP directives, like "foobar-src" """
    findings = []  # type: List[Finding]
    for directive, __ in iter_directives(policies):
        if is_directive(directive):
            continue
        if directive.endswith(":"):
            description = _("CSP directives don't end with a colon.")
        else:
            description = _(
                'Directive "%(directive)s" is not a known CSP directive.'
            ) % {"directive": directive}
        findings.append(
            Finding(Type.UNKNOWN_DIRECTIVE, description, Severity.SYNTAX, directive)
        )
    return findings


def check_missing_semicolon(policies: PolicyCollection) -> List[Finding]:
    """A directive name used as value is very likely a forgotten semicolon:
    "script-src foo.bar object-src 'none'"
    """
    findings = []  # type: List[Finding]
    for directive, values in iter_directives(policies):
        for value in values:
            if is_directive(value):
                findings.append(
                    Finding(
                        Type.MISSING_SEMICOLON,
                        _(
                            'Did you forget the semicolon? "%(value)s" seems to be '
                            "a directive, not a value."
                        )
                        % {"value": value},
                        Severity.SYNTAX,
                        directive,
                        value,
                    )
                )
    return findings


def check_invalid_keyword(policies: PolicyCollection) -> List[Finding]:
    """Flag unquoted keywords and quoted values that are not keywords: "script-src 'notAkeyword'" """
    findings = []  # type: List[Finding]
    for directive, values in iter_directives(policies):
        for value in values:
            if (
                value in keywords_without_ticks
                or value.startswith("nonce-")
                or hash_prefix_re.match(value)
            ):
                findings.append(
                    Finding(
                        Type.INVALID_KEYWORD,
                        _('Did you forget to surround "%(value)s" with single-ticks?')
                        % {"value": value},
                        Severity.SYNTAX,
                        directive,
                        value,
                    )
                )
                continue
            if not value.startswith("'"):
                continue
            if directive == Directive.REQUIRE_TRUSTED_TYPES_FOR:
                if value == TrustedTypesSink.SCRIPT:
                    continue
            elif directive == Directive.TRUSTED_TYPES:
                if value in ("'allow-duplicates'", Keyword.NONE):
                    continue
            elif is_keyword(value) or is_hash(value) or is_nonce(value):
                continue
            findings.append(
                Finding(
                    Type.INVALID_KEYWORD,
                    _("%(value)s seems to be an invalid CSP keyword.")
                    % {"value": value},
                    Severity.SYNTAX,
                    directive,
                    value,
                )
            )
    return findings


# Security checks


def check_script_unsafe_inline(policies: PolicyCollection) -> List[Finding]:
    """'unsafe-inline' in script-src.

    Must be given the effective policies: nonces and hashes disable
    'unsafe-inline' in CSP2 and above.
    """
    findings = []  # type: List[Finding]
    for policy in policies:
        directive = policy.get_effective_directive(Directive.SCRIPT_SRC)
        if Keyword.UNSAFE_INLINE in policy.get(directive):
            findings.append(
                Finding(
                    Type.SCRIPT_UNSAFE_INLINE,
                    _(
                        "'unsafe-inline' allows the execution of unsafe in-page "
                        "scripts and event handlers."
                    ),
                    Severity.HIGH,
                    directive,
                    Keyword.UNSAFE_INLINE,
                )
            )
    return findings


def check_script_unsafe_eval(policies: PolicyCollection) -> List[Finding]:
    findings = []  # type: List[Finding]
    for policy in policies:
        directive = policy.get_effective_directive(Directive.SCRIPT_SRC)
        if Keyword.UNSAFE_EVAL in policy.get(directive):
            findings.append(
                Finding(
                    Type.SCRIPT_UNSAFE_EVAL,
                    _(
                        "'unsafe-eval' allows the execution of code injected into "
                        "DOM APIs such as eval()."
                    ),
                    Severity.MEDIUM_MAYBE,
                    directive,
                    Keyword.UNSAFE_EVAL,
                )
            )
    return findings


def check_plain_url_schemes(policies: PolicyCollection) -> List[Finding]:
    """data:, http: or https: in script-src, object-src or base-uri"""
    findings = []  # type: List[Finding]
    for policy in policies:
        for directive in policy.get_effective_directives(DIRECTIVES_CAUSING_XSS):
            for value in policy.get(directive):
                if value in URL_SCHEMES_CAUSING_XSS:
                    findings.append(
                        Finding(
                            Type.PLAIN_URL_SCHEMES,
                            _(
                                "%(value)s URI in %(directive)s allows the "
                                "execution of unsafe scripts."
                            )
                            % {"value": value, "directive": directive},
                            Severity.HIGH,
                            directive,
                            value,
                        )
                    )
    return findings


def check_wildcards(policies: PolicyCollection) -> List[Finding]:
    """"*", "http://*" or "//*" in script-src, object-src or base-uri"""
    findings = []  # type: List[Finding]
    for policy in policies:
        for directive in policy.get_effective_directives(DIRECTIVES_CAUSING_XSS):
            for value in policy.get(directive):
                if get_scheme_free_url(value) == "*":
                    findings.append(
                        Finding(
                            Type.PLAIN_WILDCARD,
                            _("%(directive)s should not allow '*' as source")
                            % {"directive": directive},
                            Severity.HIGH,
                            directive,
                            value,
                        )
                    )
    return findings


def check_policy_missing_directives(policy: Policy) -> List[Finding]:
    findings = []  # type: List[Finding]
    directives = DIRECTIVES_CAUSING_XSS  # type: Tuple[str, ...]
    if Directive.DEFAULT_SRC in policy:
        # missing fetch directives fall back to default-src
        if Directive.OBJECT_SRC not in policy and Keyword.NONE not in policy.get(
            Directive.DEFAULT_SRC
        ):
            findings.append(
                Finding(
                    Type.MISSING_DIRECTIVES,
                    _("Can you restrict object-src to 'none'?"),
                    Severity.HIGH_MAYBE,
                    Directive.OBJECT_SRC,
                )
            )
        if Directive.BASE_URI in policy:
            return findings
        # base-uri does not fall back to default-src
        directives = (Directive.BASE_URI,)

    for directive in directives:
        if directive in policy:
            continue
        if directive == Directive.OBJECT_SRC:
            description = _(
                "Missing object-src allows the injection of plugins which can "
                "execute JavaScript. Can you set it to 'none'?"
            )
        elif directive == Directive.BASE_URI:
            # only nonce based policies and hash based policies with
            # 'strict-dynamic' rely on relative script URLs
            if not policy.has_script_nonces and not (
                policy.has_script_hashes and policy.has_strict_dynamic
            ):
                continue
            description = _(
                "Missing base-uri allows the injection of base tags. They can be "
                "used to set the base URL for all relative (script) URLs to an "
                "attacker controlled domain. Can you set it to 'none' or 'self'?"
            )
        else:
            description = _("%(directive)s directive is missing.") % {
                "directive": directive
            }
        findings.append(
            Finding(Type.MISSING_DIRECTIVES, description, Severity.HIGH, directive)
        )
    return findings


def check_missing_directives(policies: PolicyCollection) -> List[Finding]:
    """script-src, object-src and base-uri must be set (directly or with default-src)"""
    findings = []  # type: List[Finding]
    for policy in policies:
        findings += check_policy_missing_directives(policy)
    return findings


def check_script_allowlist_bypass(
    policies: PolicyCollection, bypasses: BypassLists = DEFAULT_BYPASSES
) -> List[Finding]:
    """Allowlisted script origins known to host JSONP endpoints or Angular libraries.

    Example: "default-src 'none'; script-src www.google.com"
    """
    findings = []  # type: List[Finding]
    for policy in policies:
        directive = policy.get_effective_directive(Directive.SCRIPT_SRC)
        values = policy.get(directive)
        if Keyword.NONE in values:
            continue
        for value in values:
            if value == Keyword.SELF:
                findings.append(
                    Finding(
                        Type.SCRIPT_ALLOWLIST_BYPASS,
                        _(
                            "'self' can be problematic if you host JSONP, Angular "
                            "or user uploaded files."
                        ),
                        Severity.MEDIUM_MAYBE,
                        directive,
                        value,
                    )
                )
                continue
            # keywords, nonces and hashes
            if value.startswith("'"):
                continue
            # standalone schemes and things that are not URLs
            if is_url_scheme(value) or "." not in value:
                continue

            angular_bypass = match_source(value, bypasses.angular_urls)
            jsonp_bypass = match_source(value, bypasses.jsonp_urls)
            if (
                jsonp_bypass is not None
                and jsonp_bypass.hostname in bypasses.jsonp_needs_eval
                and Keyword.UNSAFE_EVAL not in values
            ):
                jsonp_bypass = None

            if jsonp_bypass is None and angular_bypass is None:
                findings.append(
                    Finding(
                        Type.SCRIPT_ALLOWLIST_BYPASS,
                        _(
                            "No bypass found; make sure that this URL doesn't serve "
                            "JSONP replies or Angular libraries."
                        ),
                        Severity.MEDIUM_MAYBE,
                        directive,
                        value,
                    )
                )
                continue
            if jsonp_bypass is not None and angular_bypass is not None:
                bypass_domain = angular_bypass.hostname
                description = _(
                    "%(domain)s is known to host JSONP endpoints and Angular "
                    "libraries which allow to bypass this CSP."
                )
            elif jsonp_bypass is not None:
                bypass_domain = jsonp_bypass.hostname
                description = _(
                    "%(domain)s is known to host JSONP endpoints which allow to "
                    "bypass this CSP."
                )
            else:
                bypass_domain = angular_bypass.hostname
                description = _(
                    "%(domain)s is known to host Angular libraries which allow to "
                    "bypass this CSP."
                )
            findings.append(
                Finding(
                    Type.SCRIPT_ALLOWLIST_BYPASS,
                    description % {"domain": bypass_domain},
                    Severity.HIGH,
                    directive,
                    value,
                )
            )
    return findings


def check_flash_object_allowlist_bypass(
    policies: PolicyCollection, bypasses: BypassLists = DEFAULT_BYPASSES
) -> List[Finding]:
    """Allowlisted object origins known to host Flash files.

    Example: "default-src 'none'; object-src ajax.googleapis.com"
    """
    findings = []  # type: List[Finding]
    for policy in policies:
        directive = policy.get_effective_directive(Directive.OBJECT_SRC)
        values = policy.get(directive)
        plugin_types = policy.directives.get(Directive.PLUGIN_TYPES)
        if (
            plugin_types is not None
            and "application/x-shockwave-flash" not in plugin_types
        ):
            continue
        if Keyword.NONE in values:
            continue
        for value in values:
            flash_bypass = match_source(value, bypasses.flash_urls)
            if flash_bypass is not None:
                findings.append(
                    Finding(
                        Type.OBJECT_ALLOWLIST_BYPASS,
                        _(
                            "%(domain)s is known to host Flash files which allow to "
                            "bypass this CSP."
                        )
                        % {"domain": flash_bypass.hostname},
                        Severity.HIGH,
                        directive,
                        value,
                    )
                )
            elif directive == Directive.OBJECT_SRC:
                findings.append(
                    Finding(
                        Type.OBJECT_ALLOWLIST_BYPASS,
                        _("Can you restrict object-src to 'none' only?"),
                        Severity.MEDIUM_MAYBE,
                        directive,
                        value,
                    )
                )
    return findings


def check_ip_source(policies: PolicyCollection) -> List[Finding]:
    """IP addresses as sources are ignored by browsers (localhost excepted)"""
    findings = []  # type: List[Finding]
    for directive, values in iter_directives(policies):
        for value in values:
            ip = get_ip_address(value)
            if ip is None:
                continue
            # https://www.w3.org/TR/CSP2/#match-source-expression (4.8)
            if ip.is_loopback:
                description = _(
                    "%(directive)s directive allows localhost as source. Please "
                    "make sure to remove this in production environments."
                ) % {"directive": directive}
            else:
                description = _(
                    "%(directive)s directive has an IP-Address as source: %(ip)s "
                    "(will be ignored by browsers!). "
                ) % {"directive": directive, "ip": ip}
            findings.append(
                Finding(Type.IP_SOURCE, description, Severity.INFO, directive, value)
            )
    return findings


def check_deprecated_directive(policies: PolicyCollection) -> List[Finding]:
    findings = []  # type: List[Finding]
    for policy in policies:
        # https://www.chromestatus.com/feature/5769374145183744
        if Directive.REFLECTED_XSS in policy:
            findings.append(
                Finding(
                    Type.DEPRECATED_DIRECTIVE,
                    _(
                        "reflected-xss is deprecated since CSP2. Please, use the "
                        "X-XSS-Protection header instead."
                    ),
                    Severity.INFO,
                    Directive.REFLECTED_XSS,
                )
            )
        # https://www.chromestatus.com/feature/5680800376815616
        if Directive.REFERRER in policy:
            findings.append(
                Finding(
                    Type.DEPRECATED_DIRECTIVE,
                    _(
                        "referrer is deprecated since CSP2. Please, use the "
                        "Referrer-Policy header instead."
                    ),
                    Severity.INFO,
                    Directive.REFERRER,
                )
            )
        # https://github.com/w3c/webappsec-csp/pull/327
        if Directive.DISOWN_OPENER in policy:
            findings.append(
                Finding(
                    Type.DEPRECATED_DIRECTIVE,
                    _(
                        "disown-opener is deprecated since CSP3. Please, use the "
                        "Cross Origin Opener Policy header instead."
                    ),
                    Severity.INFO,
                    Directive.DISOWN_OPENER,
                )
            )
        # report-uri is still required by browsers without report-to
        if Directive.REPORT_URI in policy and Directive.REPORT_TO not in policy:
            findings.append(
                Finding(
                    Type.DEPRECATED_DIRECTIVE,
                    _(
                        "report-uri is deprecated in CSP3. Please use the report-to "
                        "directive instead."
                    ),
                    Severity.INFO,
                    Directive.REPORT_URI,
                )
            )
    return findings


def check_nonce_length(policies: PolicyCollection) -> List[Finding]:
    """Nonces must be at least 8 characters long and use the base64 charset"""
    findings = []  # type: List[Finding]
    for directive, values in iter_directives(policies):
        for value in values:
            matcher = nonce_re.match(value)
            if not matcher:
                continue
            if len(matcher.group(1)) < 8:
                findings.append(
                    Finding(
                        Type.NONCE_LENGTH,
                        _("Nonces should be at least 8 characters long."),
                        Severity.MEDIUM,
                        directive,
                        value,
                    )
                )
            if not is_nonce(value, strict=True):
                findings.append(
                    Finding(
                        Type.NONCE_CHARSET,
                        _("Nonces should only use the base64 charset."),
                        Severity.INFO,
                        directive,
                        value,
                    )
                )
    return findings


def check_src_http(policies: PolicyCollection) -> List[Finding]:
    findings = []  # type: List[Finding]
    for directive, values in iter_directives(policies):
        if directive == Directive.REPORT_URI:
            description = _("Use HTTPS to send violation reports securely.")
        else:
            description = _("Allow only resources downloaded over HTTPS.")
        for value in values:
            if value.startswith("http://"):
                findings.append(
                    Finding(
                        Type.SRC_HTTP, description, Severity.MEDIUM, directive, value
                    )
                )
    return findings


# Strict CSP and backward compatibility checks


def check_strict_dynamic(policies: PolicyCollection) -> List[Finding]:
    """Host allowlists without 'strict-dynamic': "script-src foo.bar" """
    findings = []  # type: List[Finding]
    for policy in policies:
        directive = policy.get_effective_directive(Directive.SCRIPT_SRC)
        values = policy.get(directive)
        scheme_or_host = any(not x.startswith("'") for x in values)
        if scheme_or_host and Keyword.STRICT_DYNAMIC not in values:
            findings.append(
                Finding(
                    Type.STRICT_DYNAMIC,
                    _(
                        "Host allowlists can frequently be bypassed. Consider using "
                        "'strict-dynamic' in combination with CSP nonces or hashes."
                    ),
                    Severity.STRICT_CSP,
                    directive,
                )
            )
    return findings


def check_strict_dynamic_not_standalone(policies: PolicyCollection) -> List[Finding]:
    """'strict-dynamic' without nonce or hash: "script-src 'strict-dynamic'" """
    findings = []  # type: List[Finding]
    for policy in policies:
        if (
            policy.has_strict_dynamic
            and not policy.has_script_nonces
            and not policy.has_script_hashes
        ):
            findings.append(
                Finding(
                    Type.STRICT_DYNAMIC_NOT_STANDALONE,
                    _("'strict-dynamic' without a CSP nonce/hash will block all scripts."),
                    Severity.INFO,
                    policy.get_effective_directive(Directive.SCRIPT_SRC),
                )
            )
    return findings


def check_unsafe_inline_fallback(policies: PolicyCollection) -> List[Finding]:
    """Nonces or hashes without 'unsafe-inline' block inline scripts in CSP1 browsers"""
    findings = []  # type: List[Finding]
    for policy in policies:
        if not policy.has_script_nonces and not policy.has_script_hashes:
            continue
        directive = policy.get_effective_directive(Directive.SCRIPT_SRC)
        if Keyword.UNSAFE_INLINE not in policy.get(directive):
            findings.append(
                Finding(
                    Type.UNSAFE_INLINE_FALLBACK,
                    _(
                        "Consider adding 'unsafe-inline' (ignored by browsers "
                        "supporting nonces/hashes) to be backward compatible with "
                        "older browsers."
                    ),
                    Severity.STRICT_CSP,
                    directive,
                )
            )
    return findings


def check_allowlist_fallback(policies: PolicyCollection) -> List[Finding]:
    """'strict-dynamic' without an allowlist blocks all scripts in CSP2 browsers"""
    findings = []  # type: List[Finding]
    for policy in policies:
        directive = policy.get_effective_directive(Directive.SCRIPT_SRC)
        values = policy.get(directive)
        if Keyword.STRICT_DYNAMIC not in values:
            continue
        if not any(x in ("http:", "https:", "*") or "." in x for x in values):
            findings.append(
                Finding(
                    Type.ALLOWLIST_FALLBACK,
                    _(
                        "Consider adding https: and http: url schemes (ignored by "
                        "browsers supporting 'strict-dynamic') to be backward "
                        "compatible with older browsers."
                    ),
                    Severity.STRICT_CSP,
                    directive,
                )
            )
    return findings


def check_requires_trusted_types_for_scripts(
    policies: PolicyCollection,
) -> List[Finding]:
    """One enforced policy with "require-trusted-types-for 'script'" is enough"""
    for policy in policies:
        if TrustedTypesSink.SCRIPT in policy.get(Directive.REQUIRE_TRUSTED_TYPES_FOR):
            return []
    return [
        Finding(
            Type.REQUIRE_TRUSTED_TYPES_FOR_SCRIPTS,
            _(
                "Consider requiring Trusted Types for scripts to lock down DOM XSS "
                "injection sinks. You can do this by adding "
                "\"require-trusted-types-for 'script'\" to your policy."
            ),
            Severity.INFO,
            Directive.REQUIRE_TRUSTED_TYPES_FOR,
        )
    ]
