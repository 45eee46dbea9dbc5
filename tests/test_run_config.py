"""
Tests for run_config.py and the CLI argument layer.
"""

import json

import pytest

from dashcrawl.__main__ import EXIT_CONFIG_ERROR, build_parser, main
from dashcrawl.errors import ConfigurationError
from dashcrawl.run_config import CrawlerRunConfig

SEED = "https://app.qrticket.app/dashboard"


def _valid(**overrides):
    fields = {"seed_url": SEED, "cookie_name": "sid", "cookie_value": "token"}
    fields.update(overrides)
    return CrawlerRunConfig(**fields)


class TestDefaults:

    def test_documented_defaults(self):
        cfg = CrawlerRunConfig()
        assert cfg.max_pages == 100
        assert cfg.max_workers == 4
        assert cfg.same_domain_delay == 2.0
        assert cfg.exclude_patterns == []
        assert cfg.headless is True

    def test_timeouts_in_ms(self):
        cfg = _valid(nav_timeout_seconds=30, idle_timeout_seconds=1.5)
        assert cfg.nav_timeout_ms == 30_000
        assert cfg.idle_timeout_ms == 1_500


class TestValidate:

    def test_valid_config(self):
        _valid().validate()

    @pytest.mark.parametrize("overrides", [
        {"seed_url": ""},
        {"seed_url": "qrticket.app/dashboard"},
        {"cookie_name": ""},
        {"cookie_value": ""},
        {"cookie_url": "qrticket.app"},
        {"exclude_patterns": ["[unclosed"]},
        {"max_pages": 0},
        {"max_workers": 0},
        {"same_domain_delay": -1},
        {"nav_timeout_seconds": 0},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ConfigurationError):
            _valid(**overrides).validate()

    def test_cookie_url_defaults_to_seed_origin(self):
        assert _valid().session_cookie().url == "https://app.qrticket.app"

    def test_cookie_from_storage_state(self, tmp_path):
        state = tmp_path / "state.json"
        state.write_text(json.dumps({"cookies": [
            {"name": "sid", "value": "from-state", "domain": ".qrticket.app"},
        ]}), encoding="utf-8")
        cfg = _valid(cookie_value="", cookie_state_file=str(state))
        cfg.validate()
        assert cfg.session_cookie().value == "from-state"


class TestFromEnv:

    def test_reads_prefixed_variables(self):
        cfg = CrawlerRunConfig.from_env({
            "DASHCRAWL_SEED_URL": SEED,
            "DASHCRAWL_COOKIE_NAME": "sid",
            "DASHCRAWL_COOKIE_VALUE": "token",
            "DASHCRAWL_EXCLUDE": "/logout",
            "DASHCRAWL_MAX_PAGES": "25",
            "DASHCRAWL_WORKERS": "2",
            "DASHCRAWL_DELAY": "0.5",
            "DASHCRAWL_HEADLESS": "false",
        })
        assert cfg.seed_url == SEED
        assert cfg.exclude_patterns == ["/logout"]
        assert cfg.max_pages == 25
        assert cfg.max_workers == 2
        assert cfg.same_domain_delay == 0.5
        assert cfg.headless is False
        cfg.validate()

    def test_empty_environment_gives_defaults(self):
        assert CrawlerRunConfig.from_env({}) == CrawlerRunConfig()

    def test_bad_number_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            CrawlerRunConfig.from_env({"DASHCRAWL_MAX_PAGES": "many"})


class TestCliArgs:

    def test_flags_override_base(self):
        args = build_parser().parse_args([
            SEED, "--cookie-name", "sid", "--cookie-value", "token",
            "--exclude", "/logout", "--exclude", "/admin",
            "--max-pages", "10", "--workers", "3", "--delay", "1.5", "--headful",
        ])
        base = CrawlerRunConfig(max_pages=50, cookie_url="https://qrticket.app")
        cfg = CrawlerRunConfig.from_cli_args(args, base=base)
        assert cfg.seed_url == SEED
        assert cfg.exclude_patterns == ["/logout", "/admin"]
        assert cfg.max_pages == 10
        assert cfg.max_workers == 3
        assert cfg.same_domain_delay == 1.5
        assert cfg.headless is False
        assert cfg.cookie_url == "https://qrticket.app"

    def test_unset_flags_keep_base(self):
        args = build_parser().parse_args([])
        base = _valid(max_pages=7)
        assert CrawlerRunConfig.from_cli_args(args, base=base) == base

    def test_main_exits_on_configuration_error(self, monkeypatch):
        for name in ("SEED_URL", "COOKIE_NAME", "COOKIE_VALUE", "COOKIE_STATE_FILE"):
            monkeypatch.delenv(f"DASHCRAWL_{name}", raising=False)
        monkeypatch.setattr("dashcrawl.__main__._load_env", lambda: None)
        assert main([SEED]) == EXIT_CONFIG_ERROR
