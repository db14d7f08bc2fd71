import pytest
from pydantic import ValidationError

from roundtable.errors import ConfigError
from roundtable.utils.settings import AgentOptions, AppConfig, _merge_dicts, load_config


def write_configs(tmp_path):
    (tmp_path / "base.yaml").write_text(
        "llm:\n  provider: openai\n  model: gpt-4o-mini\n"
        "agent:\n  max_steps: 15\n  usage_limit: 15\n"
        "team:\n  max_rounds: 3\n"
        "logging:\n  level: INFO\n",
        encoding="utf-8",
    )
    (tmp_path / "dev.yaml").write_text(
        "llm:\n  provider: echo\nagent:\n  max_steps: 4\nlogging:\n  format: json\n",
        encoding="utf-8",
    )


def test_load_config_merges_environment_override(tmp_path):
    write_configs(tmp_path)
    config = load_config("dev", config_dir=tmp_path)

    assert config.llm.provider == "echo"
    assert config.llm.model == "gpt-4o-mini"
    assert config.agent.max_steps == 4
    assert config.agent.usage_limit == 15
    assert config.agent.time_to_live_ms == 60000
    assert config.logging.level == "INFO"
    assert config.logging.format == "json"


def test_unknown_environment_falls_back_to_base(tmp_path):
    write_configs(tmp_path)
    assert load_config("prod", config_dir=tmp_path).llm.provider == "openai"


def test_missing_base_config_is_a_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_config(config_dir=tmp_path)


def test_agent_option_defaults():
    opts = AgentOptions()
    assert (opts.max_steps, opts.usage_limit, opts.time_to_live_ms) == (15, 15, 60000)
    assert opts.use_reflection is True
    assert opts.validate_output is False
    assert AppConfig().team.max_rounds == 3


@pytest.mark.parametrize("field", ["max_steps", "usage_limit", "time_to_live_ms"])
def test_budgets_must_be_unbounded_or_non_negative(field):
    assert getattr(AgentOptions(**{field: -1}), field) == -1
    assert getattr(AgentOptions(**{field: 0}), field) == 0
    with pytest.raises(ValidationError):
        AgentOptions(**{field: -2})


def test_merge_dicts_is_recursive():
    merged = _merge_dicts({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"c": 3}, "e": 4})
    assert merged == {"a": {"b": 1, "c": 3}, "d": 1, "e": 4}
