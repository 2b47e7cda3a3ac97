import pytest

from shoplift_watch.config import ConfigError, PipelineConfig, default_valuable_items


def test_defaults_are_valid():
    PipelineConfig().validate()


def test_default_catalog_excludes_person():
    assert 0 not in default_valuable_items()


@pytest.mark.parametrize(
    "section, name, value",
    [
        ("tracking", "proximity_threshold_px", 0),
        ("tracking", "tracker_timeout_s", -1.0),
        ("tracking", "max_tracked_people", 0),
        ("tracking", "capacity_policy", "grow"),
        ("tracking", "max_position_history", 10),
        ("behavior", "loitering_normalization_s", 20.0),
        ("behavior", "movement_score_threshold", 1.5),
        ("behavior", "movement_window", 8),
        ("detection", "conf_threshold", 2.0),
        ("alerts", "log_cooldown_s", -0.5),
        ("pose", "interval_frames", 0),
    ],
)
def test_invalid_settings_rejected(section, name, value):
    cfg = PipelineConfig()
    setattr(getattr(cfg, section), name, value)

    with pytest.raises(ConfigError):
        cfg.validate()


def test_person_class_cannot_be_valuable():
    cfg = PipelineConfig()
    cfg.detection.valuable_items = {0: "person", 67: "cell phone"}

    with pytest.raises(ConfigError, match="person_class_id"):
        cfg.validate()


def test_proximity_thresholds_must_agree():
    cfg = PipelineConfig()
    cfg.behavior.proximity_threshold_px = 60.0

    with pytest.raises(ConfigError, match="proximity_threshold_px"):
        cfg.validate()

    cfg.tracking.proximity_threshold_px = 60.0
    cfg.validate()


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)
