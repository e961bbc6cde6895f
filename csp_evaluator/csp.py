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
Vocabulary of Content Security Policies: directive names, keywords and
source expression classifiers.

https://www.w3.org/TR/CSP3/#csp-directives
"""
import re
from enum import IntEnum


class Version(IntEnum):
    CSP1 = 1
    CSP2 = 2
    CSP3 = 3


class Directive:
    # Fetch directives
    CHILD_SRC = "child-src"
    CONNECT_SRC = "connect-src"
    DEFAULT_SRC = "default-src"
    FONT_SRC = "font-src"
    FRAME_SRC = "frame-src"
    IMG_SRC = "img-src"
    MEDIA_SRC = "media-src"
    OBJECT_SRC = "object-src"
    SCRIPT_SRC = "script-src"
    SCRIPT_SRC_ATTR = "script-src-attr"
    SCRIPT_SRC_ELEM = "script-src-elem"
    STYLE_SRC = "style-src"
    STYLE_SRC_ATTR = "style-src-attr"
    STYLE_SRC_ELEM = "style-src-elem"
    PREFETCH_SRC = "prefetch-src"
    MANIFEST_SRC = "manifest-src"
    WORKER_SRC = "worker-src"

    # Document directives
    BASE_URI = "base-uri"
    PLUGIN_TYPES = "plugin-types"
    SANDBOX = "sandbox"
    DISOWN_OPENER = "disown-opener"

    # Navigation directives
    FORM_ACTION = "form-action"
    FRAME_ANCESTORS = "frame-ancestors"
    NAVIGATE_TO = "navigate-to"

    # Reporting directives
    REPORT_TO = "report-to"
    REPORT_URI = "report-uri"

    # Other directives
    BLOCK_ALL_MIXED_CONTENT = "block-all-mixed-content"
    UPGRADE_INSECURE_REQUESTS = "upgrade-insecure-requests"
    REFLECTED_XSS = "reflected-xss"
    REFERRER = "referrer"
    REQUIRE_SRI_FOR = "require-sri-for"
    TRUSTED_TYPES = "trusted-types"
    REQUIRE_TRUSTED_TYPES_FOR = "require-trusted-types-for"
    WEBRTC = "webrtc"


class Keyword:
    SELF = "'self'"
    NONE = "'none'"
    UNSAFE_INLINE = "'unsafe-inline'"
    UNSAFE_EVAL = "'unsafe-eval'"
    WASM_EVAL = "'wasm-eval'"
    WASM_UNSAFE_EVAL = "'wasm-unsafe-eval'"
    STRICT_DYNAMIC = "'strict-dynamic'"
    UNSAFE_HASHED_ATTRIBUTES = "'unsafe-hashed-attributes'"
    UNSAFE_HASHES = "'unsafe-hashes'"
    REPORT_SAMPLE = "'report-sample'"
    BLOCK = "'block'"
    ALLOW = "'allow'"


class TrustedTypesSink:
    SCRIPT = "'script'"


fetch_directives = {
    Directive.CHILD_SRC,
    Directive.CONNECT_SRC,
    Directive.DEFAULT_SRC,
    Directive.FONT_SRC,
    Directive.FRAME_SRC,
    Directive.IMG_SRC,
    Directive.MANIFEST_SRC,
    Directive.MEDIA_SRC,
    Directive.OBJECT_SRC,
    Directive.PREFETCH_SRC,
    Directive.SCRIPT_SRC,
    Directive.SCRIPT_SRC_ELEM,
    Directive.SCRIPT_SRC_ATTR,
    Directive.STYLE_SRC,
    Directive.STYLE_SRC_ELEM,
    Directive.STYLE_SRC_ATTR,
    Directive.WORKER_SRC,
}
document_directives = {
    Directive.BASE_URI,
    Directive.PLUGIN_TYPES,
    Directive.SANDBOX,
    Directive.DISOWN_OPENER,
}
navigation_directives = {
    Directive.FORM_ACTION,
    Directive.FRAME_ANCESTORS,
    Directive.NAVIGATE_TO,
}
report_directives = {Directive.REPORT_URI, Directive.REPORT_TO}
other_directives = {
    Directive.BLOCK_ALL_MIXED_CONTENT,
    Directive.REFERRER,
    Directive.REFLECTED_XSS,
    Directive.REQUIRE_SRI_FOR,
    Directive.REQUIRE_TRUSTED_TYPES_FOR,
    Directive.TRUSTED_TYPES,
    Directive.UPGRADE_INSECURE_REQUESTS,
    Directive.WEBRTC,
}
all_directives = (
    fetch_directives
    | document_directives
    | navigation_directives
    | report_directives
    | other_directives
)
all_keywords = {
    value for name, value in vars(Keyword).items() if not name.startswith("_")
}
# directives that have no meaning before CSP3
csp3_directives = (
    Directive.REPORT_TO,
    Directive.WORKER_SRC,
    Directive.MANIFEST_SRC,
    Directive.TRUSTED_TYPES,
    Directive.REQUIRE_TRUSTED_TYPES_FOR,
)

# separators of directive tokens, control characters like \x1c are not whitespace
whitespace_chars = "\t\n\x0b\x0c\r \xa0"
word_re = re.compile(r"[^\t\n\x0b\x0c\r \xa0]+")

url_scheme_re = re.compile(r"^[a-zA-Z][+a-zA-Z0-9.-]*:$")
nonce_re = re.compile(r"^'nonce-(.+)'$")
strict_nonce_re = re.compile(r"^'nonce-[a-zA-Z0-9+/_-]+={0,2}'$")
hash_re = re.compile(r"^'(sha256|sha384|sha512)-(.+)'$")
strict_hash_re = re.compile(r"^'(sha256|sha384|sha512)-[a-zA-Z0-9+/]+={0,2}'$")


def is_directive(name: str) -> bool:
    return name in all_directives


def is_fetch_directive(name: str) -> bool:
    """Fetch directives fall back to default-src when they are missing"""
    return name in fetch_directives


def is_keyword(value: str) -> bool:
    return value in all_keywords


def is_url_scheme(value: str) -> bool:
    """Scheme part followed by a colon, see https://tools.ietf.org/html/rfc3986#section-3.1"""
    return bool(url_scheme_re.match(value))


def is_nonce(value: str, strict: bool = False) -> bool:
    """Check if `value` is a nonce source; `strict` also requires the base64 charset"""
    pattern = strict_nonce_re if strict else nonce_re
    return bool(pattern.match(value))


def is_hash(value: str, strict: bool = False) -> bool:
    """Check if `value` is a hash source; `strict` also requires the base64 charset"""
    pattern = strict_hash_re if strict else hash_re
    return bool(pattern.match(value))


def normalize_directive_value(value: str) -> str:
    """Strip whitespaces and lowercase keywords and URL schemes.

    Hosts and paths keep their case.
    """
    value = value.strip(whitespace_chars)
    lower_value = value.lower()
    if is_keyword(lower_value) or is_url_scheme(value):
        return lower_value
    return value
