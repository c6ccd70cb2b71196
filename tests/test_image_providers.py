"""Tests for relay.image provider clients and dispatch."""

import base64
from unittest.mock import MagicMock, patch

import pytest

from relay.image.deepai_client import send_deepai_request
from relay.image.results import GeneratedImage, GenerationResult
from relay.image.service import generate_image
from relay.image.stability_client import send_stability_request


def _response(status_code: int = 200, payload: dict | None = None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    response.text = text
    return response


# ---------------------------------------------------------------------------
# Stability AI
# ---------------------------------------------------------------------------


class TestStability:
    def test_decodes_artifacts_and_sends_generation_defaults(self) -> None:
        artifacts = [
            {"base64": base64.b64encode(b"first").decode(), "seed": 11, "finishReason": "SUCCESS"},
            {"base64": base64.b64encode(b"second").decode(), "seed": 12, "finishReason": "CONTENT_FILTERED"},
        ]
        with patch("relay.image.stability_client.requests.post",
                   return_value=_response(payload={"artifacts": artifacts})) as post:
            result = send_stability_request("a red fox", "key")

        assert result.provider == "stability"
        assert [image.data for image in result.images] == [b"first", b"second"]
        assert [image.seed for image in result.images] == [11, 12]

        url = post.call_args.args[0]
        assert url.endswith("/text-to-image")
        payload = post.call_args.kwargs["json"]
        assert payload["text_prompts"] == [{"text": "a red fox"}]
        assert payload["sampler"] == "K_LMS"
        assert payload["cfg_scale"] == 20
        assert payload["steps"] == 52
        assert (payload["width"], payload["height"]) == (512, 512)
        assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer key"

    def test_drops_error_artifacts(self) -> None:
        artifacts = [{"base64": "", "seed": 1, "finishReason": "ERROR"}]
        with patch("relay.image.stability_client.requests.post",
                   return_value=_response(payload={"artifacts": artifacts})):
            result = send_stability_request("a red fox", "key")

        assert result.is_empty

    def test_missing_key_raises(self) -> None:
        with pytest.raises(RuntimeError, match="STABILITY_KEY"):
            send_stability_request("a red fox", "")

    def test_http_error_raises(self) -> None:
        with patch("relay.image.stability_client.requests.post",
                   return_value=_response(status_code=401, text="unauthorized")):
            with pytest.raises(RuntimeError, match="401"):
                send_stability_request("a red fox", "key")


# ---------------------------------------------------------------------------
# DeepAI
# ---------------------------------------------------------------------------


class TestDeepAI:
    def test_wraps_output_url(self) -> None:
        payload = {"id": "job-1", "output_url": "https://api.deepai.org/out.jpg"}
        with patch("relay.image.deepai_client.requests.post", return_value=_response(payload=payload)) as post:
            result = send_deepai_request("a red fox", "key")

        assert result.images == [GeneratedImage(url="https://api.deepai.org/out.jpg")]
        assert post.call_args.kwargs["data"] == {"text": "a red fox"}
        assert post.call_args.kwargs["headers"] == {"api-key": "key"}

    @pytest.mark.parametrize("payload", [{"id": "job-1"}, {"id": "job-1", "output_url": ""}])
    def test_missing_output_url_is_empty_result(self, payload) -> None:
        with patch("relay.image.deepai_client.requests.post", return_value=_response(payload=payload)):
            result = send_deepai_request("a red fox", "key")

        assert result.is_empty

    def test_missing_key_raises(self) -> None:
        with pytest.raises(RuntimeError, match="DEEP_AI_KEY"):
            send_deepai_request("a red fox", "")

    def test_http_error_raises(self) -> None:
        with patch("relay.image.deepai_client.requests.post",
                   return_value=_response(status_code=500, text="oops")):
            with pytest.raises(RuntimeError, match="500"):
                send_deepai_request("a red fox", "key")


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_uses_settings_provider(self, settings) -> None:
        expected = GenerationResult(provider="stability")
        with patch("relay.image.service.send_stability_request", return_value=expected) as stability:
            assert generate_image("a fox", settings) is expected

        stability.assert_called_once_with("a fox", "stability-key")

    def test_explicit_deepai(self, settings) -> None:
        expected = GenerationResult(provider="deepai")
        with patch("relay.image.service.send_deepai_request", return_value=expected) as deepai:
            assert generate_image("a fox", settings, "deepai") is expected

        deepai.assert_called_once_with("a fox", "deepai-key")

    def test_unknown_provider(self, settings) -> None:
        with pytest.raises(ValueError, match="Unknown image provider"):
            generate_image("a fox", settings, "dalle")


class TestGeneratedImage:
    def test_requires_exactly_one_source(self) -> None:
        with pytest.raises(ValueError):
            GeneratedImage()
        with pytest.raises(ValueError):
            GeneratedImage(url="https://x", data=b"x")
