"""
Unit Tests for the What-If Simulation stage.

Projection model: revenue = leads * LTV, profit = revenue - spend.
"""

import pytest

from campaign_intel.core.exceptions import ConfigurationError
from campaign_intel.models.enums import RiskLevel, ScenarioKind
from campaign_intel.models.schemas import ScenarioDefinition
from campaign_intel.services.simulation import DEFAULT_SCENARIOS, simulate
from campaign_intel.tests.conftest import make_metric


@pytest.fixture
def metrics():
    # spend 10,000 and 50 leads: avg CPL 200
    return [
        make_metric('ad-1', spend=6000.0, leads=30.0),
        make_metric('ad-2', spend=4000.0, leads=20.0),
    ]


class TestSimulate:

    def test_no_metrics_means_no_simulation(self):
        assert simulate([]) is None

    def test_baseline(self, metrics):
        baseline = simulate(metrics).baseline

        assert baseline.name == 'Current Trajectory'
        assert baseline.projected.spend == pytest.approx(10000.0)
        assert baseline.projected.leads == pytest.approx(50.0)
        assert baseline.projected.cpl == pytest.approx(200.0)
        assert baseline.projected.revenue == pytest.approx(150000.0)
        assert baseline.projected.profit == pytest.approx(140000.0)

    def test_default_scenarios_in_order(self, metrics):
        output = simulate(metrics)
        assert [s.id for s in output.scenarios] == [
            'increase_20_percent',
            'increase_50_percent',
            'pause_low_perf',
        ]

    def test_scale_twenty_percent(self, metrics):
        scenario = simulate(metrics).scenarios[0]

        assert scenario.projected.spend == pytest.approx(12000.0)
        assert scenario.projected.cpl == pytest.approx(214.0)
        assert scenario.projected.leads == pytest.approx(12000.0 / 214.0)
        assert scenario.projected.profit == pytest.approx(12000.0 / 214.0 * 3000.0 - 12000.0)

    def test_scale_fifty_percent_carries_cpl_penalty(self, metrics):
        scenario = simulate(metrics).scenarios[1]

        assert scenario.projected.spend == pytest.approx(15000.0)
        assert scenario.projected.cpl == pytest.approx(240.0)
        assert scenario.projected.leads == pytest.approx(62.5)
        assert scenario.risk_level == RiskLevel.MEDIUM

    def test_efficiency_holds_leads(self, metrics):
        scenario = simulate(metrics).scenarios[2]

        assert scenario.projected.spend == pytest.approx(9000.0)
        assert scenario.projected.leads == pytest.approx(50.0)
        assert scenario.projected.cpl == pytest.approx(180.0)
        assert scenario.projected.profit == pytest.approx(141000.0)

    def test_without_leads_scale_scenarios_project_nothing(self):
        output = simulate([make_metric(spend=500.0, leads=0.0)])

        assert output.baseline.projected.cpl == 0.0
        assert output.scenarios[0].projected.leads == 0.0
        assert output.scenarios[0].projected.profit == pytest.approx(-600.0)

    def test_custom_ltv(self, metrics):
        assert simulate(metrics, ltv=1000.0).baseline.projected.revenue == pytest.approx(50000.0)

    def test_best_scenario_is_highest_profit(self, metrics):
        output = simulate(metrics)
        # at LTV 3000 and CPL 240 every extra lead is profitable
        assert output.best_scenario().id == 'increase_50_percent'

    def test_best_scenario_with_thin_margin(self):
        # CPL 2900 against LTV 3000: only the efficiency move improves profit
        output = simulate([make_metric(spend=29000.0, leads=10.0)])
        assert output.best_scenario().id == 'pause_low_perf'


class TestScenarioDefinition:

    def test_large_scale_up_without_cpl_penalty_is_rejected(self):
        with pytest.raises(ConfigurationError):
            ScenarioDefinition(
                id='double',
                name='Double',
                description='Double the budget.',
                assumptions='Linear returns.',
                risk_level=RiskLevel.HIGH,
                kind=ScenarioKind.SCALE,
                spend_multiplier=2.0,
                cpl_multiplier=1.0,
            )

    def test_small_scale_up_may_stay_linear(self):
        definition = ScenarioDefinition(
            id='nudge',
            name='Nudge',
            description='Small increase.',
            assumptions='CPL holds.',
            risk_level=RiskLevel.LOW,
            kind=ScenarioKind.SCALE,
            spend_multiplier=1.1,
        )
        output = simulate([make_metric(spend=1000.0, leads=10.0)], scenarios=[definition])
        assert output.scenarios[0].projected.leads == pytest.approx(11.0)

    def test_defaults_obey_the_penalty_rule(self):
        for definition in DEFAULT_SCENARIOS:
            if definition.kind == ScenarioKind.SCALE and definition.spend_multiplier > 1.3:
                assert definition.cpl_multiplier > 1.0
