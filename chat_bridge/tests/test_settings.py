from chat_bridge.config.settings import Settings


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("UPSTREAM_TOKEN", "ZAI_TOKEN", "TALK_MODEL", "HTTP_TIMEOUT", "CHAT_BRIDGE_CONFIG_FILE"):
        monkeypatch.delenv(name, raising=False)
    s = Settings(_env_file=None)
    assert s.upstream_token is None
    assert s.talk_model is None
    assert s.http_timeout == 60.0
    assert s.telemetry_capacity == 100


def test_env_token_alias(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("UPSTREAM_TOKEN", raising=False)
    monkeypatch.setenv("ZAI_TOKEN", "legacy-token")
    monkeypatch.setenv("TALK_MODEL", "  ")
    s = Settings(_env_file=None)
    assert s.upstream_token == "legacy-token"
    assert s.talk_model is None


def test_yaml_config_file(monkeypatch, tmp_path):
    cfg = tmp_path / "bridge.yaml"
    cfg.write_text("talk_model: gpt-4o-mini\ntelemetry_capacity: 7\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TALK_MODEL", raising=False)
    monkeypatch.delenv("TELEMETRY_CAPACITY", raising=False)
    monkeypatch.setenv("CHAT_BRIDGE_CONFIG_FILE", str(cfg))
    s = Settings(_env_file=None)
    assert s.talk_model == "gpt-4o-mini"
    assert s.telemetry_capacity == 7


def test_env_wins_over_yaml(monkeypatch, tmp_path):
    cfg = tmp_path / "bridge.yaml"
    cfg.write_text("http_timeout: 5\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CHAT_BRIDGE_CONFIG_FILE", str(cfg))
    monkeypatch.setenv("HTTP_TIMEOUT", "12")
    assert Settings(_env_file=None).http_timeout == 12.0


def test_missing_explicit_file_falls_back_to_cwd_config(monkeypatch, tmp_path):
    (tmp_path / "config.yaml").write_text("talk_model: from-cwd\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TALK_MODEL", raising=False)
    monkeypatch.setenv("CHAT_BRIDGE_CONFIG_FILE", str(tmp_path / "missing.yaml"))
    assert Settings(_env_file=None).talk_model == "from-cwd"
