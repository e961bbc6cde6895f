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
import logging
from functools import partial
from typing import Callable, List, Optional, Sequence, Union

from django.utils.translation import gettext as _

from csp_evaluator import checkers, conf
from csp_evaluator.bypasses import BypassLists
from csp_evaluator.csp import Version
from csp_evaluator.finding import Finding, Severity, Type
from csp_evaluator.parser import get_csp_parser
from csp_evaluator.policy import PolicyCollection

logger = logging.getLogger(__name__)

CheckerFunction = Callable[[PolicyCollection], List[Finding]]

PARSER_CHECKS = [
    checkers.check_unknown_directive,
    checkers.check_missing_semicolon,
    checkers.check_invalid_keyword,
]  # type: List[CheckerFunction]

STRICT_CSP_CHECKS = [
    checkers.check_strict_dynamic,
    checkers.check_strict_dynamic_not_standalone,
    checkers.check_unsafe_inline_fallback,
    checkers.check_allowlist_fallback,
    checkers.check_requires_trusted_types_for_scripts,
]  # type: List[CheckerFunction]


def get_security_checks(bypasses: BypassLists) -> List[CheckerFunction]:
    return [
        checkers.check_script_unsafe_inline,
        checkers.check_script_unsafe_eval,
        checkers.check_plain_url_schemes,
        checkers.check_wildcards,
        checkers.check_missing_directives,
        partial(checkers.check_script_allowlist_bypass, bypasses=bypasses),
        partial(checkers.check_flash_object_allowlist_bypass, bypasses=bypasses),
        checkers.check_ip_source,
        checkers.check_deprecated_directive,
        checkers.check_nonce_length,
        checkers.check_src_http,
    ]


def get_check_name(check: CheckerFunction) -> str:
    if isinstance(check, partial):
        check = check.func
    return getattr(check, "__name__", repr(check))


class CSPEvaluator:
    """Evaluate a collection of policies against a set of checks.

    Parsed checks are independent of the CSP version (e.g. syntax checks) and
    get the policies as parsed. Effective checks get the policies as seen by a
    user agent supporting `version`.
    """

    def __init__(
        self,
        policies: PolicyCollection,
        version: Optional[int] = None,
        bypasses: Optional[BypassLists] = None,
    ):
        self.policies = policies
        if version is None:
            version = conf.get_default_version()
        self.version = Version(version)
        if bypasses is None:
            bypasses = conf.get_bypass_lists()
        self.bypasses = bypasses
        self.findings = []  # type: List[Finding]

    @property
    def default_parsed_checks(self) -> List[CheckerFunction]:
        return PARSER_CHECKS + STRICT_CSP_CHECKS

    @property
    def default_effective_checks(self) -> List[CheckerFunction]:
        return get_security_checks(self.bypasses)

    def run_check(
        self, check: CheckerFunction, policies: PolicyCollection
    ) -> List[Finding]:
        try:
            return list(check(policies))
        except Exception:
            name = get_check_name(check)
            logger.exception("CSP check %s failed", name)
            return [
                Finding(
                    Type.INTERNAL_ERROR,
                    _("The check %(name)s failed unexpectedly.") % {"name": name},
                    Severity.INFO,
                    "",
                    name,
                )
            ]

    def evaluate(
        self,
        parsed_checks: Optional[Sequence[CheckerFunction]] = None,
        effective_checks: Optional[Sequence[CheckerFunction]] = None,
    ) -> List[Finding]:
        """Return the findings of all checks.

        Findings about values ignored by the user agent come first, then the
        findings of the parsed checks and of the effective checks, in the
        order of the checks.
        """
        if parsed_checks is None:
            parsed_checks = self.default_parsed_checks
        if effective_checks is None:
            effective_checks = self.default_effective_checks
        effective_policies, self.findings = self.policies.get_effective_policies(
            self.version
        )
        for check in parsed_checks:
            self.findings += self.run_check(check, self.policies)
        for check in effective_checks:
            self.findings += self.run_check(check, effective_policies)
        logger.debug(
            "%d findings for CSP%d: %r",
            len(self.findings),
            self.version,
            self.policies.convert_to_strings(),
        )
        return self.findings


def evaluate_csp(
    policies: Union[str, Sequence[str]], version: Optional[int] = None
) -> List[Finding]:
    """Parse one or several Content-Security-Policy headers and evaluate them"""
    parser = get_csp_parser(policies)
    return CSPEvaluator(parser.policies, version=version).evaluate()
