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
Matching of allowlisted sources (with host and path wildcards) against
known URLs.

https://www.w3.org/TR/CSP2/#match-source-expression
"""
import re
from typing import Iterable, Optional
from urllib.parse import SplitResult, urlsplit

scheme_re = re.compile(r"^\w[+\w.-]*://", re.IGNORECASE)


def get_scheme_free_url(url: str) -> str:
    """Remove the scheme and the protocol-relative "//" prefix"""
    url = scheme_re.sub("", url)
    if url.startswith("//"):
        url = url[2:]
    return url


def get_domain(url: SplitResult) -> str:
    """Host of a parsed URL, without port, userinfo or IPv6 brackets"""
    return url.hostname or ""


def match_wildcard_urls(
    csp_url: str, urls: Iterable[str]
) -> Optional[SplitResult]:
    """Return the first URL of `urls` matched by the allowlisted `csp_url`.

    `csp_url` is a protocol-relative URL ("//host/path"); its host can start
    with a "*." subdomain wildcard and a path ending with "/" matches any
    path below it. Raise ValueError for malformed URLs.
    """
    pattern = urlsplit(csp_url)
    host = get_domain(pattern).lower()
    host_has_wildcard = host.startswith("*.")
    # "*.foo.bar" only matches subdomains, the leading dot is kept
    wildcard_free_host = host[1:] if host_has_wildcard else host
    path = pattern.path
    for url in urls:
        candidate = urlsplit(url)
        domain = get_domain(candidate)
        if not domain.endswith(wildcard_free_host):
            continue
        if not host_has_wildcard and host != domain:
            continue
        if path:
            # https://www.w3.org/TR/CSP2/#source-list-path-patching
            if path.endswith("/"):
                if not candidate.path.startswith(path):
                    continue
            elif candidate.path != path:
                continue
        return candidate
    return None
