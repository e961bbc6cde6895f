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
Parsed policies and the policy effectively enforced by a user agent.

https://www.w3.org/TR/CSP2/#enforcing-multiple-policies
"""
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from django.utils.translation import gettext as _

from csp_evaluator.csp import (
    Directive,
    Keyword,
    Version,
    csp3_directives,
    is_fetch_directive,
    is_hash,
    is_nonce,
)
from csp_evaluator.finding import Finding, Severity, Type

logger = logging.getLogger(__name__)


def remove_value(values: List[str], value: str):
    """Remove the first occurrence of `value`, if any"""
    if value in values:
        values.remove(value)


class Policy:
    """One policy, as sent by a single header (or a single comma-separated part of it)."""

    def __init__(self, directives: Optional[Dict[str, List[str]]] = None):
        self.directives = directives or {}  # type: Dict[str, List[str]]

    def __repr__(self):
        return "Policy(%r)" % self.directives

    def __eq__(self, other):
        if not isinstance(other, Policy):
            return NotImplemented
        return list(self.directives.items()) == list(other.directives.items())

    def __contains__(self, directive: str) -> bool:
        return directive in self.directives

    def get(self, directive: str) -> List[str]:
        return self.directives.get(directive, [])

    def clone(self) -> "Policy":
        return Policy({k: list(v) for (k, v) in self.directives.items()})

    def convert_to_string(self) -> str:
        content = ""
        for directive, values in self.directives.items():
            content += directive
            for value in values:
                content += " " + value
            content += "; "
        return content

    def get_effective_directive(self, directive: str) -> str:
        """Return `directive` if present, default-src for missing fetch directives"""
        if directive in self.directives or not is_fetch_directive(directive):
            return directive
        return Directive.DEFAULT_SRC

    def get_effective_directives(self, directives: Iterable[str]) -> List[str]:
        result = []  # type: List[str]
        for directive in directives:
            effective = self.get_effective_directive(directive)
            if effective not in result:
                result.append(effective)
        return result

    def get_effective_values(self, directive: str) -> List[str]:
        return self.get(self.get_effective_directive(directive))

    @property
    def has_script_nonces(self) -> bool:
        return any(is_nonce(x) for x in self.get_effective_values(Directive.SCRIPT_SRC))

    @property
    def has_script_hashes(self) -> bool:
        return any(is_hash(x) for x in self.get_effective_values(Directive.SCRIPT_SRC))

    @property
    def has_strict_dynamic(self) -> bool:
        return Keyword.STRICT_DYNAMIC in self.get_effective_values(Directive.SCRIPT_SRC)

    def get_effective_policy(self, version: int) -> Tuple["Policy", List[Finding]]:
        """Return this policy as seen by a user agent supporting `version`.

        The returned findings describe the values that are ignored by such a
        user agent. Membership tests are always done on the original values.
        Raise ValueError if `version` is not a known CSP version.
        """
        version = Version(version)
        findings = []  # type: List[Finding]
        effective = self.clone()
        directive = self.get_effective_directive(Directive.SCRIPT_SRC)
        values = self.get(directive)
        effective_values = effective.directives.get(directive)

        if effective_values is not None and (
            self.has_script_nonces or self.has_script_hashes
        ):
            if version >= Version.CSP2:
                # nonces and hashes disable 'unsafe-inline' in CSP2 and above
                if Keyword.UNSAFE_INLINE in values:
                    remove_value(effective_values, Keyword.UNSAFE_INLINE)
                    logger.debug("%s ignored in %s", Keyword.UNSAFE_INLINE, directive)
                    findings.append(
                        Finding(
                            Type.IGNORED,
                            _(
                                "unsafe-inline is ignored if a nonce or a hash is present. "
                                "(CSP2 and above)"
                            ),
                            Severity.NONE,
                            directive,
                            Keyword.UNSAFE_INLINE,
                        )
                    )
            else:
                # nonces and hashes are unknown before CSP2
                for value in values:
                    if value.startswith("'nonce-") or value.startswith("'sha"):
                        remove_value(effective_values, value)

        if effective_values is not None and self.has_strict_dynamic:
            if version >= Version.CSP3:
                # https://w3c.github.io/webappsec-csp/#strict-dynamic-usage
                for value in values:
                    if not value.startswith("'") or value in (
                        Keyword.SELF,
                        Keyword.UNSAFE_INLINE,
                    ):
                        remove_value(effective_values, value)
                        logger.debug("%s ignored in %s", value, directive)
                        findings.append(
                            Finding(
                                Type.IGNORED,
                                _(
                                    "Because of strict-dynamic this entry is ignored "
                                    "in CSP3 and above"
                                ),
                                Severity.NONE,
                                directive,
                                value,
                            )
                        )
            else:
                remove_value(effective_values, Keyword.STRICT_DYNAMIC)

        if version < Version.CSP3:
            # https://w3c.github.io/webappsec-csp/#changes-from-level-2
            for name in csp3_directives:
                effective.directives.pop(name, None)
        return effective, findings


class PolicyCollection(list):
    """Policies simultaneously enforced on a resource.

    A resource must be allowed by each policy of the collection.
    """

    def clone(self) -> "PolicyCollection":
        return PolicyCollection(x.clone() for x in self)

    def convert_to_strings(self) -> List[str]:
        return [x.convert_to_string() for x in self]

    def convert_to_string(self) -> str:
        return ", ".join(self.convert_to_strings())

    @property
    def has_script_nonces(self) -> bool:
        return any(x.has_script_nonces for x in self)

    @property
    def has_script_hashes(self) -> bool:
        return any(x.has_script_hashes for x in self)

    @property
    def has_strict_dynamic(self) -> bool:
        return any(x.has_strict_dynamic for x in self)

    def get_effective_policies(
        self, version: int
    ) -> Tuple["PolicyCollection", List[Finding]]:
        """Return the collection as seen by a user agent supporting `version`.

        Raise ValueError if `version` is not a known CSP version.
        """
        version = Version(version)
        effective = PolicyCollection()
        findings = []  # type: List[Finding]
        for policy in self:
            effective_policy, policy_findings = policy.get_effective_policy(version)
            effective.append(effective_policy)
            findings += policy_findings
        return effective, findings
