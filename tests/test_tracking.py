import numpy as np
import pytest

from shoplift_watch.config import TrackingConfig
from shoplift_watch.detection import Detection
from shoplift_watch.tracking import TrackStore, bbox_center, distance

from conftest import make_pose, person_at


def test_bbox_center_and_distance():
    assert bbox_center(np.array([0, 0, 10, 20])) == (5.0, 10.0)
    assert distance((0, 0), (3, 4)) == 5.0


def test_first_detection_creates_track(tracking_cfg):
    store = TrackStore(tracking_cfg)
    assigned = store.update([person_at(100, 100)], now=0.0)

    assert assigned == [1]
    track = store.get(1)
    assert track.first_seen == 0.0
    assert track.last_seen == 0.0
    assert list(track.positions) == [(100.0, 100.0)]


def test_repeated_location_keeps_single_track(tracking_cfg):
    store = TrackStore(tracking_cfg)
    for i in range(50):
        store.update([person_at(200 + (i % 3), 150)], now=i * 0.1)

    assert len(store) == 1
    assert store.get(1).last_seen == pytest.approx(4.9)


def test_far_detection_creates_new_track(tracking_cfg):
    store = TrackStore(tracking_cfg)
    store.update([person_at(100, 100)], now=0.0)
    store.update([person_at(400, 100)], now=0.1)

    assert len(store) == 2
    assert [t.track_id for t in store] == [1, 2]


def test_match_requires_distance_strictly_below_threshold():
    store = TrackStore(TrackingConfig(proximity_threshold_px=80.0))
    store.update([person_at(100, 100)], now=0.0)
    store.update([person_at(180, 100)], now=0.1)  # exactly 80px away

    assert len(store) == 2


def test_nearest_track_wins(tracking_cfg):
    store = TrackStore(tracking_cfg)
    store.update([person_at(100, 100), person_at(200, 100)], now=0.0)
    store.update([person_at(160, 100)], now=0.1)

    assert store.get(2).last_position == (160.0, 100.0)
    assert store.get(1).last_position == (100.0, 100.0)


def test_distance_tie_goes_to_earlier_track(tracking_cfg):
    store = TrackStore(tracking_cfg)
    store.update([person_at(100, 100), person_at(200, 100)], now=0.0)
    store.update([person_at(150, 100)], now=0.1)

    assert store.get(1).last_position == (150.0, 100.0)
    assert len(store.get(2).positions) == 1


def test_greedy_matching_follows_arrival_order(tracking_cfg):
    store = TrackStore(tracking_cfg)
    store.update([person_at(100, 100)], now=0.0)
    # Both are within range of track 1; the first detection claims it,
    # the second one also matches it since association is per detection.
    assigned = store.update([person_at(130, 100), person_at(120, 100)], now=0.1)

    assert assigned == [1, 1]
    assert len(store) == 1


def test_empty_detection_list_mutates_nothing(tracking_cfg):
    store = TrackStore(tracking_cfg)
    store.update([person_at(100, 100)], now=0.0)
    before = list(store.get(1).positions)

    assert store.update([], now=1.0) == []
    assert list(store.get(1).positions) == before
    assert store.get(1).last_seen == 0.0


def test_degenerate_box_is_skipped(tracking_cfg):
    store = TrackStore(tracking_cfg)
    bad = Detection(class_id=0, confidence=0.9, box=[50, 50, 50, 120])
    nan = Detection(class_id=0, confidence=0.9, box=[np.nan, 0, 10, 10])

    assigned = store.update([bad, nan, person_at(300, 300)], now=0.0)

    assert assigned == [1]
    assert len(store) == 1


def test_position_history_is_bounded():
    store = TrackStore(TrackingConfig(max_position_history=5))
    for i in range(20):
        store.update([person_at(100 + i, 100)], now=i * 0.1)

    positions = list(store.get(1).positions)
    assert len(positions) == 5
    assert positions[0] == (115.0, 100.0)
    assert positions[-1] == (119.0, 100.0)


def test_pose_attached_to_matched_track(tracking_cfg):
    store = TrackStore(tracking_cfg)
    pose = make_pose({})
    store.update([person_at(100, 100), person_at(400, 100)], poses=[None, pose], now=0.0)

    assert store.get(1).last_pose is None
    assert store.get(2).last_pose is pose


def test_pose_kept_between_refreshes_and_cleared_by_empty_refresh(tracking_cfg):
    store = TrackStore(tracking_cfg)
    pose = make_pose({})
    store.update([person_at(100, 100)], poses=[pose], now=0.0)
    store.update([person_at(102, 100)], now=0.1)

    assert store.get(1).last_pose is pose

    store.update([person_at(104, 100)], poses=[None], now=0.2)

    assert store.get(1).last_pose is None
    assert list(store.get(1).poses) == [pose]


def test_identifiers_unique_and_increasing(tracking_cfg):
    store = TrackStore(tracking_cfg)
    seen = []
    for step in range(10):
        assigned = store.update([person_at(100 + step * 500, 100)], now=step * 10.0)
        seen.extend(assigned)
        store.expire(now=step * 10.0)

    assert seen == sorted(set(seen))
    assert seen == list(range(1, 11))


def test_expire_removes_stale_tracks(tracking_cfg):
    store = TrackStore(tracking_cfg)
    store.update([person_at(100, 100)], now=0.0)
    store.update([person_at(400, 100)], now=3.0)

    assert store.expire(now=5.0) == []
    assert store.expire(now=5.5) == [1]
    assert 1 not in store
    assert 2 in store


def test_expired_track_is_not_resurrected(tracking_cfg):
    store = TrackStore(tracking_cfg)
    store.update([person_at(100, 100)], now=0.0)
    store.expire(now=tracking_cfg.tracker_timeout_s + 1)

    assigned = store.update([person_at(100, 100)], now=tracking_cfg.tracker_timeout_s + 2)

    assert assigned == [2]
    assert store.get(1) is None


def test_capacity_evicts_least_recently_seen():
    store = TrackStore(TrackingConfig(max_tracked_people=2))
    store.update([person_at(100, 100)], now=0.0)
    store.update([person_at(400, 100)], now=1.0)
    store.update([person_at(100, 100)], now=2.0)  # refresh track 1

    store.update([person_at(700, 100)], now=3.0)

    assert len(store) == 2
    assert 2 not in store
    assert [t.track_id for t in store] == [1, 3]


def test_capacity_reject_policy_drops_new_person():
    store = TrackStore(TrackingConfig(max_tracked_people=1, capacity_policy="reject"))
    store.update([person_at(100, 100)], now=0.0)
    assigned = store.update([person_at(500, 100)], now=1.0)

    assert assigned == []
    assert [t.track_id for t in store] == [1]


def test_reset_keeps_identifier_sequence(tracking_cfg):
    store = TrackStore(tracking_cfg)
    store.update([person_at(100, 100)], now=0.0)
    store.reset()

    assert len(store) == 0
    assert store.update([person_at(100, 100)], now=1.0) == [2]
