import os
from typing import List, Sequence, Union
from unittest import TestCase

import django

os.environ["DJANGO_SETTINGS_MODULE"] = "tests_csp_evaluator.settings"
django.setup()

from csp_evaluator.finding import Finding  # noqa: E402
from csp_evaluator.parser import CSPParser  # noqa: E402


class BaseTestCase(TestCase):
    def parse(self, policies: Union[str, Sequence[str]]):
        parser = CSPParser(policies)
        return parser.load()

    def check(self, policies: Union[str, Sequence[str]], check) -> List[Finding]:
        return check(self.parse(policies))
