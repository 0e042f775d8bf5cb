import json

import drawdown.__main__ as cli
from drawdown.__main__ import main
from drawdown.errors import ConfigurationError
from tests.helpers import clone_period, write_period


def test_validate_mode_exits_zero(capsys):
    code = main(["sample_period.json", "--validate"])
    assert code == 0
    assert "Period is valid." in capsys.readouterr().out


def test_invalid_period_returns_one(tmp_path, sample_period_dict, capsys):
    data = clone_period(sample_period_dict)
    data["accounts"][0]["type"] = "cash"
    path = write_period(tmp_path, data)

    code = main([str(path), "--validate"])
    assert code == 1
    assert "ERROR: accounts[0].type" in capsys.readouterr().err


def test_missing_period_file_returns_two(tmp_path):
    missing = tmp_path / "nope.json"
    code = main([str(missing), "--validate"])
    assert code == 2


def test_malformed_period_returns_two(tmp_path, sample_period_dict):
    data = clone_period(sample_period_dict)
    del data["person"]
    path = write_period(tmp_path, data)
    assert main([str(path)]) == 2


def test_summary_output(capsys):
    code = main(["sample_period.json"])
    out = capsys.readouterr().out

    assert code == 0
    assert "Strategy: Guardrails" in out
    assert "Target withdrawal: $3,500.00" in out
    assert "Vanguard Taxable: $3,500.00 (balance $296,500.00)" in out


def test_json_output_with_overrides(tmp_path, sample_period_dict, capsys):
    path = write_period(tmp_path, sample_period_dict)
    code = main([str(path), "--json", "--strategy", "static", "--sequencer", "tax_efficient", "--no-rmd"])
    data = json.loads(capsys.readouterr().out)

    assert code == 0
    assert data["strategy"] == "Static 4%"
    assert data["target_withdrawal"] == "3500.00"
    assert data["meets_target"] is True
    assert data["account_withdrawals"][0]["account_id"] == "brokerage"
    assert data["metadata"]["sequencer"] == "Tax-Efficient"


def test_mistyped_guardrails_override_fails_validation(tmp_path, sample_period_dict, capsys):
    data = clone_period(sample_period_dict)
    data["strategy"]["guardrails"]["minimum_years_between_ratchets"] = "3"
    path = write_period(tmp_path, data)

    assert main([str(path), "--validate"]) == 1
    assert main([str(path)]) == 1
    assert "strategy.guardrails.minimum_years_between_ratchets" in capsys.readouterr().err


def test_engine_configuration_error_returns_one(tmp_path, sample_period_dict, monkeypatch, capsys):
    path = write_period(tmp_path, sample_period_dict)

    def _reject(*args, **kwargs):
        raise ConfigurationError("strategy.guardrails: unusable settings")

    monkeypatch.setattr(cli, "plan_period", _reject)
    assert main([str(path)]) == 1
    assert "ERROR: strategy.guardrails: unusable settings" in capsys.readouterr().err
