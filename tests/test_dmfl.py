import os

os.environ.setdefault("DMFL_DISABLE_OBS", "1")

import config.config as _  # noqa: E402
from services.obs_media_service.core.media_queue import \
    MediaQueue  # noqa: E402
from services.obs_media_service.services.scene_rules import \
    SceneRules  # noqa: E402
from services.trigger_service.src.trigger_handler import \
    TriggerHandler  # noqa: E402


def test_handler_initialization() -> None:
    """High-level test to ensure all lower-level components are wired so the handler is successfully built."""
    settings = _.Settings()

    handler = TriggerHandler.from_settings(settings)
    assert handler is not None
    assert isinstance(handler.media_queue, MediaQueue)
    assert isinstance(handler.scene_rules, SceneRules)


def test_handler_status_shape() -> None:
    """Test that a freshly built handler reports an idle queue."""
    handler = TriggerHandler.from_settings(_.Settings())
    handler.reset()
    status = handler.status()
    assert status["busy"] is False
    assert isinstance(status["queue"], list)
    assert isinstance(status["history"], list)


def test_cli_reports_failure_without_obs(capsys) -> None:
    from services.obs_media_service.src.main import main

    exit_code = main(["--kind", "reward_redemption", "--name", "Airhorn"])

    assert exit_code == 1
    out = capsys.readouterr().out
    assert '"error_kind": "configuration"' in out
