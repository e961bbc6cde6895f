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
https://www.w3.org/TR/CSP3/#parse-serialized-policy
"""
import logging
import re
from functools import lru_cache
from typing import List, Sequence, Tuple, Union

from csp_evaluator.csp import normalize_directive_value, whitespace_chars, word_re
from csp_evaluator.policy import Policy, PolicyCollection

logger = logging.getLogger(__name__)


class CSPParser:
    # RFC2616 allows several policies in the same header, separated by commas
    policy_separator = ", "
    latin1_re = re.compile(r"^[\x00-\xFF]*$")

    def __init__(self, policies: Union[str, Sequence[str]]):
        if isinstance(policies, str):
            policies = [policies]
        self.raw_policies = list(policies)  # type: List[str]
        self.policies = PolicyCollection()

    def load(self) -> PolicyCollection:
        for raw_policy in self.split_policies():
            self.policies.append(self.parse_policy(raw_policy))
        return self.policies

    def split_policies(self) -> List[str]:
        result = []  # type: List[str]
        for header in self.raw_policies:
            result += header.split(self.policy_separator)
        return result

    def parse_policy(self, policy: str) -> Policy:
        directives = {}
        for token in policy.split(";"):
            stripped = token.strip(whitespace_chars)
            if not stripped or not self.latin1_re.match(stripped):
                if stripped:
                    logger.debug("Skipping non latin-1 directive %r", stripped)
                continue
            name, *values = word_re.findall(stripped)
            name = name.lower()
            if name in directives:
                logger.info("Ignoring duplicate directive %r in %r", name, policy)
                continue
            sources = []  # type: List[str]
            for value in values:
                value = normalize_directive_value(value)
                if value not in sources:
                    sources.append(value)
            directives[name] = sources
        return Policy(directives)


def parse_policies(policies: Union[str, Sequence[str]]) -> PolicyCollection:
    return CSPParser(policies).load()


@lru_cache()
def _get_csp_parser(policies: Tuple[str, ...]) -> CSPParser:
    parser = CSPParser(policies)
    parser.load()
    return parser


def get_csp_parser(policies: Union[str, Sequence[str]]) -> CSPParser:
    """Cached parser; the returned policies must not be modified"""
    if isinstance(policies, str):
        policies = [policies]
    return _get_csp_parser(tuple(policies))
