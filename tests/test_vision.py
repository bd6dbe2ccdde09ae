"""Unit tests for the Google Cloud Vision label extractor."""

import base64
import json

import httpx
import pytest

from meal_lens_api.models import AnnotationSource, CandidateAnnotation
from meal_lens_api.services.food_analysis import (
    AccessDeniedError,
    ConfigurationError,
    ServiceError,
    VisionLabelExtractor,
    merge_annotations,
)

from conftest import TINY_PNG_BYTES, mock_client, vision_payload


class TestMergeAnnotations:
    """Tests for merging label and object families."""

    def test_sorted_by_descending_confidence(self):
        labels = [
            CandidateAnnotation(text="Food", confidence=0.7, source=AnnotationSource.LABEL),
            CandidateAnnotation(text="Apple", confidence=0.9, source=AnnotationSource.LABEL),
        ]
        objects = [
            CandidateAnnotation(text="Bowl", confidence=0.8, source=AnnotationSource.OBJECT),
        ]

        merged = merge_annotations(labels, objects)

        assert [a.text for a in merged] == ["Apple", "Bowl", "Food"]

    def test_ties_keep_labels_before_objects(self):
        labels = [
            CandidateAnnotation(text="L1", confidence=0.8, source=AnnotationSource.LABEL),
            CandidateAnnotation(text="L2", confidence=0.8, source=AnnotationSource.LABEL),
        ]
        objects = [
            CandidateAnnotation(text="O1", confidence=0.8, source=AnnotationSource.OBJECT),
        ]

        merged = merge_annotations(labels, objects)

        assert [a.text for a in merged] == ["L1", "L2", "O1"]


class TestVisionLabelExtractor:
    """Tests for VisionLabelExtractor."""

    @pytest.mark.asyncio
    async def test_request_shape_and_credential(self, settings):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json=vision_payload(labels=[("Apple", 0.9)]))

        extractor = VisionLabelExtractor(settings, client=mock_client(handler))

        await extractor.extract(TINY_PNG_BYTES)

        assert len(captured) == 1
        request = captured[0]
        assert request.method == "POST"
        assert request.url.params["key"] == "test-vision-key"
        body = json.loads(request.content)
        entry = body["requests"][0]
        assert base64.b64decode(entry["image"]["content"]) == TINY_PNG_BYTES
        assert entry["features"] == [
            {"type": "LABEL_DETECTION", "maxResults": 10},
            {"type": "OBJECT_LOCALIZATION", "maxResults": 10},
        ]

    @pytest.mark.asyncio
    async def test_merges_labels_and_objects(self, settings):
        payload = vision_payload(
            labels=[("Food", 0.95), ("Fruit", 0.9)],
            objects=[("Apple", 0.92)],
        )
        extractor = VisionLabelExtractor(
            settings, client=mock_client(lambda r: httpx.Response(200, json=payload))
        )

        annotations = await extractor.extract(TINY_PNG_BYTES)

        assert [(a.text, a.source) for a in annotations] == [
            ("Food", AnnotationSource.LABEL),
            ("Apple", AnnotationSource.OBJECT),
            ("Fruit", AnnotationSource.LABEL),
        ]

    @pytest.mark.asyncio
    async def test_missing_families_are_empty(self, settings):
        extractor = VisionLabelExtractor(
            settings, client=mock_client(lambda r: httpx.Response(200, json={"responses": [{}]}))
        )

        assert await extractor.extract(TINY_PNG_BYTES) == []

    @pytest.mark.asyncio
    async def test_empty_text_annotations_are_dropped(self, settings):
        payload = vision_payload(labels=[("", 0.99), ("Banana", 0.9)], objects=[("", 0.95)])
        extractor = VisionLabelExtractor(
            settings, client=mock_client(lambda r: httpx.Response(200, json=payload))
        )

        annotations = await extractor.extract(TINY_PNG_BYTES)

        assert [a.text for a in annotations] == ["Banana"]

    @pytest.mark.asyncio
    async def test_missing_key_fails_before_network_call(self, unconfigured_settings):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=vision_payload())

        extractor = VisionLabelExtractor(unconfigured_settings, client=mock_client(handler))

        with pytest.raises(ConfigurationError):
            await extractor.extract(TINY_PNG_BYTES)
        assert calls == []

    @pytest.mark.asyncio
    async def test_403_is_access_denied(self, settings):
        extractor = VisionLabelExtractor(
            settings,
            client=mock_client(lambda r: httpx.Response(403, json={"error": "forbidden"})),
        )

        with pytest.raises(AccessDeniedError) as exc_info:
            await extractor.extract(TINY_PNG_BYTES)

        assert exc_info.value.status_code == 403
        assert exc_info.value.error_code == "ACCESS_DENIED"
        assert isinstance(exc_info.value, ServiceError)

    @pytest.mark.asyncio
    async def test_other_status_is_service_error_and_not_retried(self, settings):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500, text="backend error")

        extractor = VisionLabelExtractor(settings, client=mock_client(handler), retry_wait_seconds=0)

        with pytest.raises(ServiceError) as exc_info:
            await extractor.extract(TINY_PNG_BYTES)

        assert exc_info.value.status_code == 500
        assert not isinstance(exc_info.value, AccessDeniedError)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_transport_error_retried_once(self, settings):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectTimeout("timed out", request=request)
            return httpx.Response(200, json=vision_payload(labels=[("Pizza", 0.9)]))

        extractor = VisionLabelExtractor(settings, client=mock_client(handler), retry_wait_seconds=0)

        annotations = await extractor.extract(TINY_PNG_BYTES)

        assert [a.text for a in annotations] == ["Pizza"]
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_transport_error_gives_up_after_retry(self, settings):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        extractor = VisionLabelExtractor(settings, client=mock_client(handler), retry_wait_seconds=0)

        with pytest.raises(ServiceError) as exc_info:
            await extractor.extract(TINY_PNG_BYTES)

        assert exc_info.value.status_code is None
        assert exc_info.value.error_code == "CONNECTION_ERROR"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_per_image_error_in_200_response(self, settings):
        payload = {"responses": [{"error": {"code": 3, "message": "Bad image data."}}]}
        extractor = VisionLabelExtractor(
            settings, client=mock_client(lambda r: httpx.Response(200, json=payload))
        )

        with pytest.raises(ServiceError, match="Bad image data"):
            await extractor.extract(TINY_PNG_BYTES)

    @pytest.mark.asyncio
    async def test_run_wraps_errors_in_stage_result(self, unconfigured_settings):
        extractor = VisionLabelExtractor(
            unconfigured_settings, client=mock_client(lambda r: httpx.Response(200))
        )

        stage = await extractor.run(TINY_PNG_BYTES)

        assert stage.ok is False
        assert isinstance(stage.error, ConfigurationError)
        with pytest.raises(ConfigurationError):
            stage.unwrap()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            b"\x80\x81garbage",
            b"[]",
            b"null",
            b'{"responses": ["oops"]}',
            b'{"responses": [{"labelAnnotations": [{"description": "Apple", "score": "high"}]}]}',
        ],
    )
    async def test_unusable_body_is_service_error(self, settings, body):
        extractor = VisionLabelExtractor(
            settings, client=mock_client(lambda r: httpx.Response(200, content=body))
        )

        stage = await extractor.run(TINY_PNG_BYTES)

        assert stage.ok is False
        assert isinstance(stage.error, ServiceError)

    @pytest.mark.asyncio
    async def test_decoding_error_is_service_error(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.DecodingError("Malformed gzip body", request=request)

        extractor = VisionLabelExtractor(settings, client=mock_client(handler), retry_wait_seconds=0)

        with pytest.raises(ServiceError, match="Malformed gzip body"):
            await extractor.extract(TINY_PNG_BYTES)
