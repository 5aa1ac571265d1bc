"""
============================================================================
Integration Test: Budget Reconciliation Pipeline - End-to-End Validation
============================================================================

Reliability Level: L6 Critical
Input Constraints: Mock analytics HTTP responses, mock Discord webhook
Side Effects: JSON state file writes under a temporary directory

Covers the real fetcher, reconciler, JSON state store and Discord notifier
wired together; only the HTTP sessions are mocked.

VERIFICATION:
- Analytics payload flows through to applied limits and the webhook embed
- A restarted process honours the persisted last_update_date
- Analytics outage degrades to base budgets without raising
- CLI --once and --report modes print JSON and return exit codes
============================================================================
"""

import json
import os
import sys
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

import main as cli
from budget_engine.engine import BudgetScalingEngine, ReconciliationStatus
from budget_engine.observability.discord_notifier import DiscordBudgetNotifier
from budget_engine.propagation import UnconfiguredRemoteConfigWriter
from budget_engine.reconciler import UpdateReconciler
from budget_engine.update_state import JsonFileUpdateStateStore
from revenue_ingestion.revenue_fetcher import RevenueFetcher


TODAY = date(2026, 3, 14)

ANALYTICS_PAYLOAD = {
    "users": {"total": 42, "active": 17},
    "financial": {
        "mrr": 4250,
        "dealioMRR": 2000,
        "quotelyMRR": 1250,
        "shopflowMRR": None,
        "shoplinkMRR": 1000,
        "oneTimeRevenue": 600,
    },
}


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.headers = {}
    return response


@pytest.fixture
def analytics_session():
    session = MagicMock(spec=requests.Session)
    session.get.return_value = _response(payload=ANALYTICS_PAYLOAD)
    return session


@pytest.fixture
def discord_session():
    session = MagicMock(spec=requests.Session)
    session.post.return_value = _response(status_code=204)
    return session


def _build_engine(state_path, analytics_session, discord_session):
    return BudgetScalingEngine(
        fetcher=RevenueFetcher(
            base_url="https://analytics.test", timeout=5, session=analytics_session
        ),
        reconciler=UpdateReconciler(store=JsonFileUpdateStateStore(state_path)),
        remote_config_writer=UnconfiguredRemoteConfigWriter(),
        notifier=DiscordBudgetNotifier(
            "https://discord.test/hook", session=discord_session
        ),
    )


class TestPipeline:

    def test_payload_to_applied_limits_and_webhook(
        self, tmp_path, analytics_session, discord_session
    ):
        state_path = tmp_path / "state.json"
        engine = _build_engine(state_path, analytics_session, discord_session)

        result = engine.run_reconciliation(TODAY, correlation_id="corr-int")

        assert result.status is ReconciliationStatus.APPLIED
        assert result.scale_factor == Decimal("4.25")
        assert result.limits.to_dict() == {
            "executive": {"max_spending": 1275},
            "finance": {"max_cost_optimization": 638, "max_budget_allocation": 1275},
            "infrastructure": {"max_infrastructure_cost": 638},
        }
        assert result.snapshot.total_revenue == Decimal("4850")
        assert result.propagation_errors == []
        assert json.loads(state_path.read_text()) == {"last_update_date": "2026-03-14"}

        analytics_session.get.assert_called_once_with(
            "https://analytics.test/api/analytics", timeout=5
        )
        embed = discord_session.post.call_args[1]["json"]["embeds"][0]
        assert embed["footer"]["text"] == "correlation_id=corr-int"
        assert "max_spending: $1,275" in [f["value"] for f in embed["fields"]]

    def test_restart_honours_persisted_state(
        self, tmp_path, analytics_session, discord_session
    ):
        state_path = tmp_path / "state.json"
        analytics_session.get.return_value = _response(
            payload={"financial": {"mrr": 800}}
        )

        first = _build_engine(state_path, analytics_session, discord_session)
        assert first.run_reconciliation(TODAY).status is ReconciliationStatus.APPLIED

        restarted = _build_engine(state_path, analytics_session, discord_session)
        second = restarted.run_reconciliation(TODAY)

        assert second.status is ReconciliationStatus.ALREADY_CURRENT
        assert discord_session.post.call_count == 1

    def test_analytics_outage_degrades_to_base(
        self, tmp_path, analytics_session, discord_session
    ):
        analytics_session.get.side_effect = requests.Timeout("read timed out")
        engine = _build_engine(tmp_path / "state.json", analytics_session, discord_session)

        result = engine.run_reconciliation(TODAY)

        assert result.status is ReconciliationStatus.APPLIED
        assert result.snapshot.is_fallback
        assert result.scale_factor == Decimal("1")
        assert result.limits.executive_max_spending == 300
        embed = discord_session.post.call_args[1]["json"]["embeds"][0]
        assert embed["fields"][0]["value"] == "MRR: $0.00\nOne-time: $0.00"


class TestCommandLine:

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch, tmp_path):
        for name in (
            "REVENUE_ANALYTICS_URL",
            "SUPER_ADMIN_URL",
            "REVENUE_FETCH_TIMEOUT_SECONDS",
            "BUDGET_SAME_DAY_THRESHOLD",
            "BUDGET_RECONCILE_INTERVAL_SECONDS",
            "DISCORD_WEBHOOK_URL",
        ):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("BUDGET_STATE_PATH", str(tmp_path / "cli_state.json"))
        monkeypatch.setattr(cli, "load_dotenv", lambda: None)

    @pytest.fixture
    def patched_get(self):
        with patch.object(requests.Session, "get") as get:
            get.return_value = _response(payload=ANALYTICS_PAYLOAD)
            yield get

    def test_once_json(self, capsys, patched_get):
        exit_code = cli.main(["--once", "--json", "--date", "2026-03-14"])

        assert exit_code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["status"] == "APPLIED"
        assert data["today"] == "2026-03-14"
        assert data["scale_factor"] == "4.25"

    def test_once_twice_same_day(self, capsys, patched_get):
        cli.main(["--once", "--json", "--date", "2026-03-14"])
        capsys.readouterr()

        exit_code = cli.main(["--once", "--json", "--date", "2026-03-14"])

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out)["status"] == "APPLIED"

    def test_report_json(self, capsys, patched_get):
        patched_get.return_value = _response(payload={"financial": {"mrr": 2370}})

        exit_code = cli.main(["--report", "--json"])

        assert exit_code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["scale_factor"] == "2.37"
        assert data["budgets"]["executive"] == {"max_spending": 711}
        assert data["recommendations"] == [
            "Current scale: 2.4x. Next milestone: $3,000 MRR for 3.0x scaling."
        ]

    def test_invalid_config_exit_code(self, monkeypatch):
        monkeypatch.setenv("BUDGET_SAME_DAY_THRESHOLD", "50")
        assert cli.main(["--once"]) == 2

    def test_corrupt_state_exit_code(self, tmp_path, capsys, patched_get):
        (tmp_path / "cli_state.json").write_text("not json")

        exit_code = cli.main(["--once", "--date", "2026-03-14"])

        assert exit_code == 1
        assert "RECONCILIATION FAILED" in capsys.readouterr().out
