"""Unit tests for chat_memory/config.py"""
from __future__ import annotations
from pathlib import Path
import pytest
from pydantic import ValidationError

from chat_memory.config import ChatMemoryConfig


class TestDefaults:

    def test_defaults(self, tmp_path):
        cfg = ChatMemoryConfig.resolve()
        assert cfg.conversation_id == "default"
        assert cfg.db_path.resolve() == (tmp_path / "chat_memory.sqlite").resolve()
        assert cfg.max_tokens == 8192
        assert cfg.journal_mode == "WAL"


class TestPrecedence:

    def test_env_over_default(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BROWSEROS_CHAT_MEMORY_ID", "env-id")
        monkeypatch.setenv("BROWSEROS_CHAT_MEMORY_PATH", str(tmp_path / "env.sqlite"))
        monkeypatch.setenv("BROWSEROS_CHAT_MEMORY_MAX_TOKENS", "4096")
        cfg = ChatMemoryConfig.resolve()
        assert cfg.conversation_id == "env-id"
        assert cfg.db_path == tmp_path / "env.sqlite"
        assert cfg.max_tokens == 4096

    def test_explicit_over_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BROWSEROS_CHAT_MEMORY_ID", "env-id")
        monkeypatch.setenv("BROWSEROS_CHAT_MEMORY_PATH", str(tmp_path / "env.sqlite"))
        cfg = ChatMemoryConfig.resolve(conversation_id="explicit", db_path=tmp_path / "x.sqlite")
        assert cfg.conversation_id == "explicit"
        assert cfg.db_path == tmp_path / "x.sqlite"

    def test_blank_values_ignored(self, monkeypatch):
        monkeypatch.setenv("BROWSEROS_CHAT_MEMORY_ID", "   ")
        cfg = ChatMemoryConfig.resolve(conversation_id="")
        assert cfg.conversation_id == "default"

    def test_yaml_file_below_env(self, monkeypatch, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "chat_memory:\n"
            "  conversation_id: from-file\n"
            "  max_tokens: 1024\n"
            "  journal_mode: delete\n"
        )
        cfg = ChatMemoryConfig.resolve(config_file=config_file)
        assert cfg.conversation_id == "from-file"
        assert cfg.max_tokens == 1024
        assert cfg.journal_mode == "DELETE"

        monkeypatch.setenv("BROWSEROS_CHAT_MEMORY_ID", "env-id")
        assert ChatMemoryConfig.resolve(config_file=config_file).conversation_id == "env-id"

    def test_missing_or_broken_yaml_ignored(self, tmp_path):
        assert ChatMemoryConfig.resolve(config_file=tmp_path / "nope.yaml").conversation_id == "default"
        broken = tmp_path / "broken.yaml"
        broken.write_text("chat_memory: [unclosed\n")
        assert ChatMemoryConfig.resolve(config_file=broken).conversation_id == "default"


class TestValidation:

    def test_journal_mode_normalised(self):
        assert ChatMemoryConfig(journal_mode="wal").journal_mode == "WAL"

    def test_bad_journal_mode(self):
        with pytest.raises(ValidationError):
            ChatMemoryConfig(journal_mode="fast")

    def test_bad_max_tokens(self, monkeypatch):
        monkeypatch.setenv("BROWSEROS_CHAT_MEMORY_MAX_TOKENS", "0")
        with pytest.raises(ValidationError):
            ChatMemoryConfig.resolve()

    def test_db_path_is_path(self):
        assert isinstance(ChatMemoryConfig(db_path="a/b.sqlite").db_path, Path)


class TestResolveDbPath:

    def test_explicit_path_wins(self, monkeypatch, tmp_path):
        from chat_memory.config import resolve_db_path
        monkeypatch.setenv("BROWSEROS_CHAT_MEMORY_PATH", str(tmp_path / "env.sqlite"))
        assert resolve_db_path(tmp_path / "x.sqlite") == tmp_path / "x.sqlite"

    def test_reads_only_the_path_variable(self, monkeypatch, tmp_path):
        from chat_memory.config import resolve_db_path
        monkeypatch.setenv("BROWSEROS_CHAT_MEMORY_PATH", str(tmp_path / "env.sqlite"))
        monkeypatch.setenv("BROWSEROS_CHAT_MEMORY_MAX_TOKENS", "lots")
        monkeypatch.setenv("BROWSEROS_CHAT_MEMORY_JOURNAL_MODE", "bogus")
        assert resolve_db_path() == tmp_path / "env.sqlite"

    def test_default_in_cwd(self, tmp_path):
        from chat_memory.config import resolve_db_path
        assert resolve_db_path().resolve() == (tmp_path / "chat_memory.sqlite").resolve()
