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
from enum import IntEnum
from logging import ERROR, INFO, WARNING
from typing import Iterable, List, NamedTuple, Optional


class Severity(IntEnum):
    """Smaller values are worse; HIGH is the worst outcome"""

    HIGH = 10
    SYNTAX = 20
    MEDIUM = 30
    HIGH_MAYBE = 40
    STRICT_CSP = 45
    MEDIUM_MAYBE = 50
    INFO = 60
    NONE = 100


class Type(IntEnum):
    # Parser checks
    MISSING_SEMICOLON = 100
    UNKNOWN_DIRECTIVE = 101
    INVALID_KEYWORD = 102
    NONCE_CHARSET = 106

    # Security checks
    MISSING_DIRECTIVES = 300
    SCRIPT_UNSAFE_INLINE = 301
    SCRIPT_UNSAFE_EVAL = 302
    PLAIN_URL_SCHEMES = 303
    PLAIN_WILDCARD = 304
    SCRIPT_ALLOWLIST_BYPASS = 305
    OBJECT_ALLOWLIST_BYPASS = 306
    NONCE_LENGTH = 307
    IP_SOURCE = 308
    DEPRECATED_DIRECTIVE = 309
    SRC_HTTP = 310

    # Strict dynamic and backward compatibility checks
    STRICT_DYNAMIC = 400
    STRICT_DYNAMIC_NOT_STANDALONE = 401
    NONCE_HASH = 402
    UNSAFE_INLINE_FALLBACK = 403
    ALLOWLIST_FALLBACK = 404
    IGNORED = 405

    # Trusted Types checks
    REQUIRE_TRUSTED_TYPES_FOR_SCRIPTS = 500

    # raised by a check itself
    INTERNAL_ERROR = 900


class Finding(NamedTuple):
    """A diagnostic returned by a check.

    `value` is only set when the finding is about one value of the directive
    and not about the directive as a whole.
    """

    type: Type
    description: str
    severity: Severity
    directive: str
    value: Optional[str] = None

    @property
    def level(self) -> int:
        """return one of logging.{INFO, WARNING, ERROR}"""
        if self.severity <= Severity.SYNTAX:
            return ERROR
        elif self.severity <= Severity.HIGH_MAYBE:
            return WARNING
        return INFO


def get_highest_severity(findings: Iterable[Finding]) -> Severity:
    return min((x.severity for x in findings), default=Severity.NONE)


def sort_findings(findings: Iterable[Finding]) -> List[Finding]:
    """Most severe first; the order of findings of equal severity is kept"""
    return sorted(findings, key=lambda x: x.severity)
