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
from logging import ERROR, WARNING

from django.core.management import BaseCommand, CommandError

from csp_evaluator.evaluator import CSPEvaluator
from csp_evaluator.finding import get_highest_severity, sort_findings
from csp_evaluator.parser import get_csp_parser


class Command(BaseCommand):
    help = "Evaluate Content-Security-Policy headers and display the findings"

    def add_arguments(self, parser):
        parser.add_argument(
            "policies",
            nargs="+",
            help="One value per Content-Security-Policy header",
        )
        parser.add_argument(
            "--csp-version",
            type=int,
            default=None,
            help="CSP version of the user agent (default: CSP_EVALUATOR_VERSION or 3)",
        )
        parser.add_argument(
            "--sort",
            action="store_true",
            default=False,
            help="Display the most severe findings first",
        )

    def handle(self, *args, **options):
        parser = get_csp_parser(options["policies"])
        try:
            evaluator = CSPEvaluator(parser.policies, version=options["csp_version"])
        except ValueError as e:
            raise CommandError("Invalid CSP version: %s" % e)
        findings = evaluator.evaluate()
        if options["sort"]:
            findings = sort_findings(findings)
        for finding in findings:
            line = "[%s] %s" % (finding.severity.name, finding.directive)
            if finding.value is not None:
                line += " %s" % finding.value
            line += ": %s" % finding.description
            if finding.level >= ERROR:
                line = self.style.ERROR(line)
            elif finding.level >= WARNING:
                line = self.style.WARNING(line)
            self.stdout.write(line)
        self.stdout.write(
            "Highest severity: %s" % get_highest_severity(findings).name
        )
