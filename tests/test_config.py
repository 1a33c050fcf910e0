"""Tests for config loading, saving, and environment overrides."""

from __future__ import annotations

from pathlib import Path

from vimsh.config import VimshConfig, dump_toml, load, load_config, save


def test_dump_load_roundtrip(tmp_path: Path) -> None:
    cfg = VimshConfig()
    cfg.connection.host = 'vc.example.com'
    cfg.connection.user = 'administrator@vsphere.local'
    cfg.connection.port = 8443
    cfg.connection.insecure = False
    cfg.guest.exclude = r'^\.git$|"quoted"'
    cfg.guest.program_delay = 2.5
    cfg.verbosity = 3
    fpath = tmp_path / 'config.toml'
    save(fpath, cfg)

    cfg2 = load(fpath)
    assert cfg2.connection.host == 'vc.example.com'
    assert cfg2.connection.user == 'administrator@vsphere.local'
    assert cfg2.connection.port == 8443
    assert cfg2.connection.insecure is False
    assert cfg2.guest.exclude == cfg.guest.exclude
    assert cfg2.guest.program_delay == 2.5
    assert cfg2.verbosity == 3


def test_dump_toml_verbosity_default_omitted() -> None:
    text = dump_toml(VimshConfig())
    assert 'verbosity =' not in text
    assert '[connection]' in text
    assert '[guest]' in text


def test_load_ignores_unknown_keys(tmp_path: Path) -> None:
    fpath = tmp_path / 'config.toml'
    fpath.write_text('[connection]\nhost = "h"\nbogus = 1\n\n[other]\nx = 2\n')
    cfg = load(fpath)
    assert cfg.connection.host == 'h'
    assert not hasattr(cfg.connection, 'bogus')


def test_env_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv('VIMSH_HOST', 'esx.lab')
    monkeypatch.setenv('VIMSH_USER', 'ops')
    monkeypatch.setenv('VIMSH_PORT', '9443')
    monkeypatch.setenv('VIMSH_INSECURE', 'no')
    monkeypatch.delenv('VIMSH_PASSWORD', raising=False)
    cfg = load_config(tmp_path / 'missing.toml')
    assert cfg.connection.host == 'esx.lab'
    assert cfg.connection.user == 'ops'
    assert cfg.connection.port == 9443
    assert cfg.connection.insecure is False


def test_expanded_paths_expands_env(monkeypatch) -> None:
    monkeypatch.setenv('VIMSH_TEST_DIR', '/tmp/vimsh-x')
    cfg = VimshConfig()
    cfg.shell.history_file = '$VIMSH_TEST_DIR/history'
    assert cfg.expanded_paths().shell.history_file == '/tmp/vimsh-x/history'


def test_dump_toml_verbosity_is_top_level() -> None:
    import tomllib

    cfg = VimshConfig()
    cfg.verbosity = 2
    text = dump_toml(cfg)
    assert text.index('verbosity = 2') < text.index('[connection]')
    raw = tomllib.loads(text)
    assert raw['verbosity'] == 2
    assert 'verbosity' not in raw['guest']
