import sys

from core.auth import TokenValidator

import mint_token


def test_mint_produces_token_the_helper_accepts(monkeypatch):
    monkeypatch.setenv("OHFIXIT_JWT_SECRET", "cli-secret")
    monkeypatch.delenv("HELPER_JWT_ALGORITHM", raising=False)

    token = mint_token.mint("flush-dns-macos", ttl_seconds=120, scope="execute")

    claims = TokenValidator("cli-secret").validate(token)
    assert claims.action_id == "flush-dns-macos"
    assert claims.scope == "execute"
    assert claims.exp - claims.iat == 120
    assert claims.approval_id.startswith("cli-")
    assert claims.subject == "cli-user"


def test_main_usage(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["mint_token.py"])
    assert mint_token.main() == 2
    assert "Usage" in capsys.readouterr().out


def test_main_rejects_bad_ttl(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["mint_token.py", "flush-dns-macos", "soon"])
    assert mint_token.main() == 2
    assert "Invalid ttl" in capsys.readouterr().out
