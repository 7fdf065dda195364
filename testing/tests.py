from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, override_settings

from testing.financial.base import ScenarioError
from testing.financial.runner import AVAILABLE_SCENARIOS, run_all, run_scenario


@override_settings(ALLOW_TEST_SCENARIOS=True)
class FinancialScenarioTests(SimpleTestCase):

    def test_all_scenarios_pass(self):
        run_all()

    def test_each_scenario_by_name(self):
        for name in AVAILABLE_SCENARIOS:
            with self.subTest(scenario=name):
                run_scenario(name)

    def test_unknown_scenario(self):
        with self.assertRaises(ScenarioError):
            run_scenario("does_not_exist")

    def test_management_command(self):
        out = StringIO()
        call_command("run_financial_scenarios", "--scenario", "chat_fresh", stdout=out)
        self.assertIn("All requested scenarios passed.", out.getvalue())


@override_settings(ALLOW_TEST_SCENARIOS=False)
class DisabledScenarioTests(SimpleTestCase):

    def test_runner_refuses(self):
        with self.assertRaises(ScenarioError):
            run_all()

    def test_command_fails(self):
        with self.assertRaises(CommandError):
            call_command("run_financial_scenarios", stdout=StringIO())
