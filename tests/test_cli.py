import json

import pytest

from storefront_gateway.cli import main as cli_main
from storefront_gateway.gateway.ai import ProviderTestResult


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for key in ("SHOPIFY_STORE_URL", "SHOPIFY_ACCESS_TOKEN", "AI_PROVIDER", "AI_API_KEY", "ANTHROPIC_API_KEY"):
        monkeypatch.delenv(key, raising=False)


def test_search_without_store_exits_2():
    assert cli_main.main(["search", "--query", "laptop"]) == 2


def test_search_prints_json(monkeypatch, capsys):
    class Engine:
        async def search(self, query):
            return []

    class Services:
        search = Engine()

    monkeypatch.setattr(cli_main, "build_services", lambda config: Services())
    code = cli_main.main(["search", "--query", "laptop", "--store-url", "shop.example", "--token", "t"])

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out == {"query": "laptop", "count": 0, "products": []}


def test_ai_test_requires_credential():
    assert cli_main.main(["ai-test", "--provider", "anthropic"]) == 2


def test_ai_test_reports_result(monkeypatch, capsys):
    class Dispatcher:
        async def test_connection(self, provider, model, credential):
            return ProviderTestResult(success=False, error=f"{provider} said no")

    class Services:
        dispatcher = Dispatcher()

    monkeypatch.setattr(cli_main, "build_services", lambda config, **kwargs: Services())
    code = cli_main.main(["ai-test", "--provider", "anthropic", "--api-key", "sk-ant"])

    assert code == 1
    assert "anthropic said no" in capsys.readouterr().err


def test_subcommand_is_required():
    with pytest.raises(SystemExit):
        cli_main.main([])
