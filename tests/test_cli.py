from __future__ import annotations

import json

from storefront.cli import DEFAULT_CATALOG, main
from storefront.core.security import verify_access_token


def test_seed_catalog_is_idempotent(capsys, monkeypatch, stock_of):
    monkeypatch.setattr("storefront.cli.configure_logging", lambda: None)
    assert main(["seed-catalog"]) == 0
    first = json.loads(capsys.readouterr().out)
    assert main(["seed-catalog"]) == 0
    second = json.loads(capsys.readouterr().out)

    assert len(first["created"]) == len(DEFAULT_CATALOG)
    assert second == {"created": [], "skipped": len(DEFAULT_CATALOG)}
    assert stock_of("iphone-15-pro") == 5


def test_issue_token(capsys, monkeypatch):
    monkeypatch.setattr("storefront.cli.configure_logging", lambda: None)
    assert main(["issue-token", "admin-42", "--role", "admin"]) == 0
    token = capsys.readouterr().out.strip()
    principal = verify_access_token(token)
    assert principal.id == "admin-42"
    assert principal.role == "admin"
