"""Tests for the generation session: ordering, partial failure, progress, retry."""

import asyncio
import json

import pytest
from pydantic import ValidationError

from imagestudio.handlers.error_handler import (
    ApiRequestError,
    ConfigurationError,
    TransportError,
)
from imagestudio.models.generate import (
    ErrorCategory,
    GeneratedImage,
    GenerationMode,
    GenerationRequest,
    UploadedImage,
)
from imagestudio.services.image_generation_service.batcher import RequestBatcher
from imagestudio.services.image_generation_service.generate import Generation


def img(name):
    return GeneratedImage(b64_json=name, revised_prompt=name)


class FakeClient:
    """Replays scripted batch outcomes; an Exception entry is raised."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []
        self.closed = False

    def _next(self):
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def generate_text(self, prompt, n, size, style, negative_prompt=None):
        self.calls.append(("text", prompt, n))
        return self._next()

    async def edit_images(self, prompt, images, n, size, style, negative_prompt=None):
        self.calls.append(("edit", prompt, n, [i.data for i in images]))
        return self._next()

    async def aclose(self):
        self.closed = True


class FakeEnhancer:
    def __init__(self, result=None, error=None, gate=None):
        self.result = result
        self.error = error
        self.gate = gate
        self.calls = 0

    async def enhance(self, prompt):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def make_session(outcomes, max_per_request=4, enhancer=None):
    client = FakeClient(outcomes)
    sleep = RecordingSleep()
    batcher = RequestBatcher(max_per_request=max_per_request, sleep=sleep)
    session = Generation(client=client, batcher=batcher, enhancer=enhancer)
    return session, client, sleep


def test_count_is_clamped_on_the_request():
    assert GenerationRequest(prompt="x", count=7).count == 4
    assert GenerationRequest(prompt="x", count=0).count == 1
    assert Generation.effective_count(7) == 4


def test_results_keep_batch_order():
    session, client, sleep = make_session(
        [[img("A1"), img("A2")], [img("B1"), img("B2")]], max_per_request=2
    )

    state = asyncio.run(session.generate(GenerationRequest(prompt="a cat", count=4)))

    assert [i.b64_json for i in state.images] == ["A1", "A2", "B1", "B2"]
    assert [c[2] for c in client.calls] == [2, 2]
    assert sleep.delays == [5.0]
    assert state.error is None
    assert state.progress is None
    assert not state.is_loading


def test_partial_failure_preserves_earlier_images():
    session, client, _ = make_session(
        [[img("A1")], ApiRequestError("Prompt rejected", status_code=400), [img("C1")]],
        max_per_request=1,
    )

    state = asyncio.run(session.generate(GenerationRequest(prompt="a cat", count=3)))

    assert [i.b64_json for i in state.images] == ["A1"]
    assert len(client.calls) == 2
    assert state.error.category == ErrorCategory.UNKNOWN
    assert state.error.message == "Prompt rejected"
    assert not state.is_loading


def test_progress_advances_by_batch_size_then_resets():
    session, _, _ = make_session(
        [[img("A1"), img("A2")], [img("B1"), img("B2")]], max_per_request=2
    )
    progress = []
    session.subscribe(lambda s: progress.append(s.progress and (s.progress.completed, s.progress.total)))

    asyncio.run(session.generate(GenerationRequest(prompt="a cat", count=4)))

    assert progress == [(0, 4), (2, 4), (4, 4), None]


def test_images_are_published_as_each_batch_lands():
    session, _, _ = make_session([[img("A1")], [img("B1")]], max_per_request=1)
    published = []
    session.subscribe(lambda s: published.append([i.b64_json for i in s.images]))

    asyncio.run(session.generate(GenerationRequest(prompt="a cat", count=2)))

    assert ["A1"] in published
    assert published[-1] == ["A1", "B1"]


def test_empty_prompt_rejected_without_network():
    session, client, _ = make_session([])

    state = asyncio.run(session.generate(GenerationRequest(prompt="   ", count=1)))

    assert client.calls == []
    assert state.error.category == ErrorCategory.VALIDATION


def test_edit_mode_requires_source_images():
    session, client, _ = make_session([])
    request = GenerationRequest(prompt="make it blue", mode=GenerationMode.IMAGE_TO_IMAGE)

    state = asyncio.run(session.generate(request))

    assert client.calls == []
    assert state.error.category == ErrorCategory.VALIDATION


def test_edit_mode_uses_edit_endpoint():
    session, client, _ = make_session([[img("E1")]])
    request = GenerationRequest(
        prompt="make it blue",
        count=1,
        mode=GenerationMode.IMAGE_TO_IMAGE,
        source_images=[UploadedImage(data="AAAA", mime_type="image/png")],
    )

    asyncio.run(session.generate(request))

    assert client.calls == [("edit", "make it blue", 1, ["AAAA"])]


def test_network_and_server_failures_are_classified():
    session, _, _ = make_session([TransportError()])
    state = asyncio.run(session.generate(GenerationRequest(prompt="a cat", count=1)))
    assert state.error.category == ErrorCategory.NETWORK_UNREACHABLE

    session, _, _ = make_session([ApiRequestError("API request failed with status 500", 500)])
    state = asyncio.run(session.generate(GenerationRequest(prompt="a cat", count=1)))
    assert state.error.category == ErrorCategory.SERVER_OVERLOADED


def test_retry_clears_error_and_starts_over():
    session, client, _ = make_session([TransportError(), [img("A1")]])
    request = GenerationRequest(prompt="a cat", count=1)

    async def scenario():
        first = await session.generate(request)
        second = await session.retry()
        return first, second

    first, second = asyncio.run(scenario())

    assert first.error is not None
    assert second.error is None
    assert [i.b64_json for i in second.images] == ["A1"]
    assert len(client.calls) == 2


class GatedClient(FakeClient):
    """Holds each batch open until the gate is set and counts overlap."""

    def __init__(self, gate):
        super().__init__([])
        self.gate = gate
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate_text(self, prompt, n, size, style, negative_prompt=None):
        self.calls.append(("text", prompt, n))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await self.gate.wait()
            return [img(prompt)]
        finally:
            self.in_flight -= 1


def test_overlapping_generate_is_ignored():
    async def scenario():
        client = GatedClient(asyncio.Event())
        session = Generation(client=client, batcher=RequestBatcher(sleep=RecordingSleep()))
        first = asyncio.create_task(session.generate(GenerationRequest(prompt="first", count=1)))
        second = asyncio.create_task(session.generate(GenerationRequest(prompt="second", count=1)))
        await asyncio.sleep(0)
        client.gate.set()
        await asyncio.gather(first, second)
        return client, session.state

    client, state = asyncio.run(scenario())

    assert client.max_in_flight == 1
    assert [c[1] for c in client.calls] == ["first"]
    assert [i.b64_json for i in state.images] == ["first"]
    assert not state.is_loading


def test_generate_is_accepted_again_after_finishing():
    session, client, _ = make_session([[img("A1")], [img("B1")]])

    async def scenario():
        await session.generate(GenerationRequest(prompt="one", count=1))
        return await session.generate(GenerationRequest(prompt="two", count=1))

    state = asyncio.run(scenario())

    assert len(client.calls) == 2
    assert [i.b64_json for i in state.images] == ["B1"]


def test_failing_listener_does_not_change_outcome():
    session, _, _ = make_session([[img("A1")], [img("B1")]], max_per_request=1)

    def render(state):
        if state.images:
            raise ValueError("render failed")

    session.subscribe(render)

    state = asyncio.run(session.generate(GenerationRequest(prompt="a cat", count=2)))

    assert [i.b64_json for i in state.images] == ["A1", "B1"]
    assert state.error is None
    assert not state.is_loading


def test_enhance_returns_text_and_clears_error():
    session, _, _ = make_session([], enhancer=FakeEnhancer(result="a vivid cat"))

    result = asyncio.run(session.enhance_prompt("a cat"))

    assert result == "a vivid cat"
    assert session.state.error is None
    assert not session.state.is_enhancing


def test_enhance_is_single_flight():
    async def scenario():
        gate = asyncio.Event()
        enhancer = FakeEnhancer(result="vivid", gate=gate)
        session, _, _ = make_session([], enhancer=enhancer)
        first = asyncio.create_task(session.enhance_prompt("a cat"))
        await asyncio.sleep(0)
        second = await session.enhance_prompt("a cat")
        gate.set()
        return await first, second, enhancer.calls

    first, second, calls = asyncio.run(scenario())

    assert first == "vivid"
    assert second is None
    assert calls == 1


def test_enhance_errors_use_enhancement_wording():
    session, _, _ = make_session([], enhancer=FakeEnhancer(error=TransportError()))
    assert asyncio.run(session.enhance_prompt("a cat")) is None
    assert session.state.error.category == ErrorCategory.NETWORK_UNREACHABLE
    assert "enhancement API" in session.state.error.message

    session, _, _ = make_session([], enhancer=FakeEnhancer(error=ConfigurationError("no key")))
    asyncio.run(session.enhance_prompt("a cat"))
    assert session.state.error.category == ErrorCategory.NOT_CONFIGURED


def test_empty_prompt_skips_enhancement():
    enhancer = FakeEnhancer(result="x")
    session, _, _ = make_session([], enhancer=enhancer)

    assert asyncio.run(session.enhance_prompt("")) is None
    assert enhancer.calls == 0


def test_stream_emits_states_then_done():
    session, _, _ = make_session([[img("A1")], [img("B1")]], max_per_request=1)

    async def scenario():
        return [json.loads(chunk) async for chunk in session.generate_stream(
            GenerationRequest(prompt="a cat", count=2)
        )]

    events = asyncio.run(scenario())

    assert events[0]["event"] == "state"
    assert events[0]["data"]["progress"] == {"completed": 0, "total": 2}
    assert events[-1] == {"event": "done", "data": {"count": 2}}
    image_counts = [len(e["data"]["images"]) for e in events if e["event"] == "state"]
    assert image_counts == sorted(image_counts)


def test_stream_ends_with_error_event():
    session, _, _ = make_session([TransportError()])

    async def scenario():
        return [json.loads(chunk) async for chunk in session.generate_stream(
            GenerationRequest(prompt="a cat", count=1)
        )]

    events = asyncio.run(scenario())

    assert events[-1]["event"] == "error"
    assert events[-1]["data"]["category"] == "network_unreachable"


def test_closing_stream_early_cancels_generation():
    async def scenario():
        client = GatedClient(asyncio.Event())
        session = Generation(client=client, batcher=RequestBatcher(sleep=RecordingSleep()))
        stream = session.generate_stream(GenerationRequest(prompt="a cat", count=1))
        first = await stream.__anext__()
        await asyncio.sleep(0)
        await stream.aclose()
        return json.loads(first), client, session.state

    first, client, state = asyncio.run(scenario())

    assert first["event"] == "state"
    assert client.in_flight == 0
    assert not state.is_loading


def test_non_integer_count_fails_validation():
    for value in (None, "abc"):
        with pytest.raises(ValidationError, match="count must be an integer"):
            GenerationRequest(prompt="x", count=value)
