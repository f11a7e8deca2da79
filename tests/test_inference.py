from __future__ import annotations

from typing import Any

import httpx
import pytest

from strata_mcp.errors import StoreError
from strata_mcp.store import MemoryStore, ModelConfig
from strata_mcp.store import commands as cmd
from strata_mcp.store.inference import BOS_ID, EOS_ID, HttpGenerator, decode_tokens, encode_tokens

ENDPOINT = "http://127.0.0.1:11434"


class _FakeResponse:
    def __init__(self, *, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload if payload is not None else {}

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            request = httpx.Request("POST", f"{ENDPOINT}/api/generate")
            raise httpx.HTTPStatusError(
                f"http {self.status_code}",
                request=request,
                response=httpx.Response(self.status_code, request=request),
            )

    def json(self) -> Any:
        return self._payload


class _FakeClient:
    def __init__(self, *, post_resp: _FakeResponse | None = None, error: Exception | None = None) -> None:
        self._post_resp = post_resp
        self._error = error
        self.posts: list[dict[str, Any]] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):  # noqa: ANN001
        return False

    def post(self, url: str, json: dict[str, Any], headers: dict[str, str]):  # noqa: ARG002
        self.posts.append({"url": url, "json": json, "headers": headers})
        if self._error is not None:
            raise self._error
        assert self._post_resp is not None
        return self._post_resp


def _install(monkeypatch: pytest.MonkeyPatch, client: _FakeClient) -> None:
    import strata_mcp.store.inference as inference_mod

    monkeypatch.setattr(inference_mod.httpx, "Client", lambda *_args, **_kwargs: client)


def test_encode_decode_bytes() -> None:
    ids = encode_tokens("hé")
    assert ids == list("hé".encode("utf-8"))
    assert decode_tokens(ids) == "hé"


def test_special_tokens_are_dropped_on_decode() -> None:
    ids = encode_tokens("hi", add_special_tokens=True)
    assert ids[0] == BOS_ID and ids[-1] == EOS_ID
    assert decode_tokens(ids) == "hi"


def test_generate_maps_options(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _FakeClient(
        post_resp=_FakeResponse(
            payload={
                "model": "llama3.2",
                "response": "Hello!",
                "done_reason": "length",
                "prompt_eval_count": 3,
                "eval_count": 2,
            }
        )
    )
    _install(monkeypatch, client)
    gen = HttpGenerator(ModelConfig(endpoint=ENDPOINT + "/", model="llama3.2", api_key="secret"))

    result = gen.generate(model="llama3.2", prompt="Hi", max_tokens=2, temperature=0, seed=7)

    assert result.text == "Hello!"
    assert result.stop_reason == "length"
    assert (result.prompt_tokens, result.completion_tokens) == (3, 2)
    sent = client.posts[0]
    assert sent["url"] == f"{ENDPOINT}/api/generate"
    assert sent["json"]["stream"] is False
    assert sent["json"]["options"] == {"num_predict": 2, "temperature": 0.0, "seed": 7}
    assert sent["headers"] == {"Authorization": "Bearer secret"}


def test_generate_missing_model(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, _FakeClient(post_resp=_FakeResponse(status_code=404)))
    gen = HttpGenerator(ModelConfig(endpoint=ENDPOINT, model="nope"))

    with pytest.raises(StoreError) as exc:
        gen.generate(model="nope", prompt="Hi")
    assert exc.value.code == "MODEL_NOT_FOUND"


def test_generate_server_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, _FakeClient(post_resp=_FakeResponse(status_code=500)))
    gen = HttpGenerator(ModelConfig(endpoint=ENDPOINT, model="m"))

    with pytest.raises(StoreError) as exc:
        gen.generate(model="m", prompt="Hi")
    assert exc.value.code == "INFERENCE_FAILED"


def test_generate_bad_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, _FakeClient(post_resp=_FakeResponse(payload={"done": True})))
    gen = HttpGenerator(ModelConfig(endpoint=ENDPOINT, model="m"))

    with pytest.raises(StoreError) as exc:
        gen.generate(model="m", prompt="Hi")
    assert exc.value.code == "INFERENCE_FAILED"


def test_connect_error_is_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("time.sleep", lambda _seconds: None)
    client = _FakeClient(error=httpx.ConnectError("connection refused"))
    _install(monkeypatch, client)
    gen = HttpGenerator(ModelConfig(endpoint=ENDPOINT, model="m"))

    with pytest.raises(StoreError) as exc:
        gen.generate(model="m", prompt="Hi")
    assert exc.value.code == "INFERENCE_FAILED"
    assert len(client.posts) == 3


def test_timeout_from_config() -> None:
    assert HttpGenerator(ModelConfig(endpoint=ENDPOINT, model="m", timeout_ms=2500)).timeout_seconds == 2.5


class TestStoreInference:
    def test_generate_without_model(self, store: MemoryStore) -> None:
        with pytest.raises(StoreError) as exc:
            store.session().execute(cmd.Generate(model="m", prompt="Hi"))
        assert exc.value.code == "MODEL_NOT_CONFIGURED"

    def test_generate_then_unload(self, monkeypatch: pytest.MonkeyPatch) -> None:
        client = _FakeClient(post_resp=_FakeResponse(payload={"response": "ok"}))
        _install(monkeypatch, client)
        store = MemoryStore(model=ModelConfig(endpoint=ENDPOINT, model="m"))
        executor = store.session()

        assert executor.execute(cmd.GenerateUnload(model="m")).value is False
        generated = executor.execute(cmd.Generate(model="m", prompt="Hi"))
        assert generated.result.text == "ok"  # type: ignore[union-attr]
        assert executor.execute(cmd.GenerateUnload(model="m")).value is True
        assert client.posts[-1]["json"] == {"model": "m", "keep_alive": 0}
