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
from django.conf import settings

from csp_evaluator.bypasses import (
    ANGULAR_URLS,
    FLASH_URLS,
    JSONP_NEEDS_EVAL,
    JSONP_URLS,
    BypassLists,
)
from csp_evaluator.csp import Version


def get_default_version() -> Version:
    """CSP version of the user agent to emulate, CSP3 unless CSP_EVALUATOR_VERSION is set"""
    return Version(getattr(settings, "CSP_EVALUATOR_VERSION", Version.CSP3))


def get_bypass_lists() -> BypassLists:
    return BypassLists(
        jsonp_urls=tuple(getattr(settings, "CSP_EVALUATOR_JSONP_URLS", JSONP_URLS)),
        angular_urls=tuple(
            getattr(settings, "CSP_EVALUATOR_ANGULAR_URLS", ANGULAR_URLS)
        ),
        flash_urls=tuple(getattr(settings, "CSP_EVALUATOR_FLASH_URLS", FLASH_URLS)),
        jsonp_needs_eval=tuple(
            getattr(settings, "CSP_EVALUATOR_JSONP_NEEDS_EVAL", JSONP_NEEDS_EVAL)
        ),
    )
