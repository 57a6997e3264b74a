"""
Tests for the Custom Search client and the assistant's web search tool.
"""
import json
from types import SimpleNamespace

import httpx
import pytest

from conftest import SEARCH_REPLY, make_openai_client_with_replies, run, tool_call_message
from core.config import LLMConfig, SearchConfig
from core.exceptions import AIResponseParseException, ConfigurationException, UpstreamServiceException
from services.assistant_service import SEARCH_TOOL, AssistantService
from services.llm_client import LLMClient
from services.web_search import WebSearchClient


def make_search(handler, api_key="search-key", engine_id="engine-1"):
    requests = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    config = SearchConfig(api_key=api_key, engine_id=engine_id)
    return WebSearchClient(config, transport=httpx.MockTransport(recording_handler)), requests


def test_search_returns_top_results():
    search, requests = make_search(lambda request: httpx.Response(200, json=SEARCH_REPLY))

    results = run(search.search("pre-money valuation"))

    assert [r.title for r in results] == ["Pre-money valuation", "Post-money valuation", "Dilution"]
    assert results[0].link == "https://a.example"
    params = requests[0].url.params
    assert params["q"] == "pre-money valuation"
    assert params["cx"] == "engine-1"
    assert params["key"] == "search-key"


def test_search_without_items_is_empty():
    search, _ = make_search(lambda request: httpx.Response(200, json={"searchInformation": {}}))
    assert run(search.search("nothing")) == []


def test_search_needs_key_and_engine():
    search, requests = make_search(lambda request: httpx.Response(200, json=SEARCH_REPLY), engine_id=None)
    assert search.enabled is False
    with pytest.raises(ConfigurationException):
        run(search.search("anything"))
    assert requests == []


def test_search_http_error_is_upstream_error():
    search, _ = make_search(lambda request: httpx.Response(403, text="quota exceeded"))
    with pytest.raises(UpstreamServiceException) as exc_info:
        run(search.search("anything"))
    assert exc_info.value.upstream_status == 403
    assert exc_info.value.body == "quota exceeded"


def test_assistant_searches_when_the_model_asks():
    search, _ = make_search(lambda request: httpx.Response(200, json=SEARCH_REPLY))
    openai_client = make_openai_client_with_replies(
        tool_call_message(json.dumps({"query": "pre-money valuation"})),
        SimpleNamespace(content="Pre-money is the company's value before the round.", tool_calls=None),
    )
    assistant = AssistantService(LLMClient(LLMConfig(api_key="sk-test"), client=openai_client), search)

    result = run(assistant.ask("What is pre-money?"))

    assert result.answer == "Pre-money is the company's value before the round."
    assert [r.title for r in result.search_results] == ["Pre-money valuation", "Post-money valuation", "Dilution"]

    first, second = openai_client.chat.completions.create.call_args_list
    assert first.kwargs["tools"] == [SEARCH_TOOL]
    assert "tools" not in second.kwargs, "The follow-up should not offer the tool again"
    follow_up = second.kwargs["messages"]
    assert follow_up[-2] == {"role": "assistant", "content": ""}
    assert follow_up[-1]["role"] == "user"
    assert 'search results for "pre-money valuation"' in follow_up[-1]["content"]
    assert "Value before the round." in follow_up[-1]["content"]
    assert second.kwargs["max_tokens"] == 200


def test_assistant_without_search_offers_no_tools():
    search, _ = make_search(lambda request: httpx.Response(200, json=SEARCH_REPLY), api_key=None)
    openai_client = make_openai_client_with_replies(SimpleNamespace(content="Short answer.", tool_calls=None))
    assistant = AssistantService(LLMClient(LLMConfig(api_key="sk-test"), client=openai_client), search)

    result = run(assistant.ask("What is dilution?"))

    assert result.answer == "Short answer."
    assert result.search_results is None
    assert "tools" not in openai_client.chat.completions.create.call_args.kwargs


def test_assistant_answers_directly_when_no_search_is_requested():
    search, requests = make_search(lambda request: httpx.Response(200, json=SEARCH_REPLY))
    openai_client = make_openai_client_with_replies(SimpleNamespace(content="Known answer.", tool_calls=[]))
    assistant = AssistantService(LLMClient(LLMConfig(api_key="sk-test"), client=openai_client), search)

    result = run(assistant.ask("What is equity?"))

    assert result.answer == "Known answer."
    assert result.search_results is None
    assert requests == []


def test_unreadable_search_arguments_raise():
    search, requests = make_search(lambda request: httpx.Response(200, json=SEARCH_REPLY))
    openai_client = make_openai_client_with_replies(tool_call_message("{not json"))
    assistant = AssistantService(LLMClient(LLMConfig(api_key="sk-test"), client=openai_client), search)

    with pytest.raises(AIResponseParseException) as exc_info:
        run(assistant.ask("What is pre-money?"))
    assert exc_info.value.raw_content == "{not json"
    assert requests == []
