from __future__ import annotations

import pytest

from services.obs_media_service.core.errors import PollTimeoutError
from services.obs_media_service.utils.poller import (file_path_equals,
                                                     poll_until_ready,
                                                     positive_duration,
                                                     retry_until_hidden,
                                                     scene_items_contain,
                                                     scene_name_present)


class Responses:
    """Returns queued responses in order, then repeats the last one."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if len(self.responses) > 1:
            response = self.responses.pop(0)
        else:
            response = self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def test_ready_on_first_attempt_returns_without_sleeping() -> None:
    sleep = RecordingSleep()
    result = poll_until_ready(
        Responses("Scene A"), scene_name_present, 500, 5000, sleep=sleep
    )
    assert result.ok
    assert result.value == "Scene A"
    assert result.elapsed_ms == 0
    assert result.attempts == 1
    assert sleep.calls == []


@pytest.mark.parametrize("ready_on", [2, 3, 7])
def test_ready_on_attempt_k_spends_k_minus_one_intervals(ready_on: int) -> None:
    request = Responses(*([0] * (ready_on - 1)), 4000)
    sleep = RecordingSleep()
    result = poll_until_ready(request, positive_duration, 100, 5000, sleep=sleep)
    assert result.ok
    assert result.value == 4000
    assert result.elapsed_ms == (ready_on - 1) * 100
    assert request.calls == ready_on
    assert len(sleep.calls) == ready_on - 1


@pytest.mark.parametrize(
    "interval_ms, timeout_ms", [(500, 5000), (300, 1000), (100, 2000), (700, 700)]
)
def test_never_ready_times_out_within_one_interval(interval_ms: int, timeout_ms: int) -> None:
    sleep = RecordingSleep()
    result = poll_until_ready(
        Responses(0), positive_duration, interval_ms, timeout_ms, sleep=sleep
    )
    assert not result.ok
    assert timeout_ms <= result.elapsed_ms < timeout_ms + interval_ms
    assert result.last_response == 0


def test_zero_timeout_makes_a_single_attempt_without_sleeping() -> None:
    sleep = RecordingSleep()
    result = poll_until_ready(Responses(0), positive_duration, 500, 0, sleep=sleep)
    assert not result.ok
    assert result.attempts == 1
    assert result.elapsed_ms == 0
    assert sleep.calls == []


def test_exceptions_count_as_not_ready() -> None:
    request = Responses(RuntimeError("socket closed"), None, "Scene B")
    result = poll_until_ready(
        request, scene_name_present, 500, 5000, sleep=RecordingSleep()
    )
    assert result.ok
    assert result.value == "Scene B"
    assert result.attempts == 3
    assert result.elapsed_ms == 1000


def test_raise_for_timeout_carries_elapsed_and_last_response() -> None:
    result = poll_until_ready(
        Responses([{"sourceName": "Other"}]),
        scene_items_contain("Media"),
        500,
        5000,
        description="media source",
        sleep=RecordingSleep(),
    )
    with pytest.raises(PollTimeoutError) as exc_info:
        result.raise_for_timeout()
    assert exc_info.value.elapsed_ms == 5000
    assert exc_info.value.last_response == [{"sourceName": "Other"}]
    assert "media source" in exc_info.value.message


def test_non_positive_interval_is_rejected() -> None:
    with pytest.raises(ValueError):
        poll_until_ready(Responses(1), positive_duration, 0, 100)


def test_retry_until_hidden_hides_until_invisible() -> None:
    visible = Responses(True, True, False)
    hidden_calls = []
    sleep = RecordingSleep()
    assert retry_until_hidden(visible, lambda: hidden_calls.append(1), 50, 1000, sleep=sleep)
    assert len(hidden_calls) == 2
    assert sleep.calls == [0.05, 0.05]


def test_retry_until_hidden_gives_up_after_timeout() -> None:
    hidden_calls = []
    sleep = RecordingSleep()
    assert not retry_until_hidden(
        lambda: True, lambda: hidden_calls.append(1), 50, 1000, sleep=sleep
    )
    assert len(hidden_calls) == 20
    assert sum(sleep.calls) == pytest.approx(1.0)


def test_scene_items_contain_ignores_case() -> None:
    predicate = scene_items_contain("Media Player")
    assert predicate([{"sourceName": "camera"}, {"sourceName": "media player"}])
    assert not predicate([{"sourceName": "camera"}, {"inputName": "Media Player"}])


def test_file_path_equals_is_exact() -> None:
    predicate = file_path_equals("/media/a.mp4")
    assert predicate("/media/a.mp4")
    assert not predicate("/media/b.mp4")
    assert not predicate(None)
