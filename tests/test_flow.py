"""Acquisition flow state machine."""
from datetime import timedelta

from advent_sphere.acquisition.flow import AcquisitionFlow, AcquisitionState, Phase
from advent_sphere.acquisition.results import ResultStatus

from conftest import START, snapshot


def at(day, hour=12):
    return START + timedelta(days=day - 1, hours=hour)


def dome(id, day, **kwargs):
    return snapshot(id, day, item_type="snowdome", bundle_id="b1", **kwargs)


def test_day_click_opens_reveal_dialog(fake_store):
    store = fake_store([snapshot(1, 2)])
    flow = AcquisitionFlow(store, 1)

    state = flow.day_clicked(AcquisitionState(), 2, at(2))

    assert state.phase == Phase.GET_MODAL
    assert state.target.id == 1
    assert state.target_day == 2


def test_day_click_ignored_when_not_openable(fake_store):
    store = fake_store([snapshot(1, 2, hour=18)])
    flow = AcquisitionFlow(store, 1)
    idle = AcquisitionState()

    assert flow.day_clicked(idle, 2, at(2, hour=17)) is idle
    assert flow.day_clicked(idle, 3, at(2, hour=19)) is idle


def test_day_click_ignored_outside_idle(fake_store):
    store = fake_store([snapshot(1, 2)])
    flow = AcquisitionFlow(store, 1)
    busy = AcquisitionState(phase=Phase.PLACEMENT, target=snapshot(9, 1))

    assert flow.day_clicked(busy, 2, at(2)) is busy


def test_regular_item_goes_to_placement_and_is_placed(fake_store):
    store = fake_store([snapshot(1, 2)])
    flow = AcquisitionFlow(store, 1)

    state = flow.day_clicked(AcquisitionState(), 2, at(2))
    state = flow.next(state)
    assert state.phase == Phase.PLACEMENT
    assert store.writes == []

    state = flow.confirm(state, (1, 0, 1), None)
    assert state.phase == Phase.COMPLETED
    assert state.last_result.ok
    assert store.items[1].is_opened
    assert store.items[1].position == (1.0, 0.0, 1.0)
    assert store.items[1].rotation == (0.0, 0.0, 0.0)

    assert flow.settle(state) == AcquisitionState()


def test_confirm_without_drop_position_is_ignored(fake_store):
    store = fake_store([snapshot(1, 2)])
    flow = AcquisitionFlow(store, 1)
    state = AcquisitionState(phase=Phase.PLACEMENT, target=store.items[1])

    assert flow.confirm(state, None, None) is state
    assert store.writes == []


def test_skip_keeps_item_in_inventory(fake_store):
    store = fake_store([snapshot(1, 2)])
    flow = AcquisitionFlow(store, 1)
    state = AcquisitionState(phase=Phase.PLACEMENT, target=store.items[1], target_day=2)

    state = flow.skip(state)

    assert state.phase == Phase.COMPLETED
    assert store.items[1].is_opened
    assert store.items[1].position is None


def test_early_snowdome_part_goes_straight_to_inventory(fake_store):
    items = [dome(1, 3), dome(2, 20)]
    store = fake_store(items, snow_dome_parts_last_date=items[1].open_date)
    flow = AcquisitionFlow(store, 1)

    state = flow.day_clicked(AcquisitionState(), 3, at(3))
    state = flow.next(state)

    assert state.phase == Phase.COMPLETED
    assert store.items[1].is_opened
    assert store.items[1].position is None


def test_final_snowdome_part_places_whole_bundle(fake_store):
    items = [dome(1, 3, is_opened=True), dome(2, 10, is_opened=True), dome(3, 20)]
    store = fake_store(items, snow_dome_parts_last_date=items[2].open_date)
    flow = AcquisitionFlow(store, 1)

    state = flow.day_clicked(AcquisitionState(), 20, at(20))
    state = flow.next(state)
    assert state.phase == Phase.SNOWDOME_PLACEMENT

    state = flow.confirm(state, (3, 0, 3), (0, 45, 0))

    assert state.phase == Phase.COMPLETED
    for part_id in (1, 2, 3):
        assert store.items[part_id].is_opened
        assert store.items[part_id].position == (3.0, 0.0, 3.0)
        assert store.items[part_id].rotation == (0.0, 45.0, 0.0)


def test_skip_on_final_day_only_marks_the_target(fake_store):
    items = [dome(1, 3, is_opened=True), dome(2, 20)]
    store = fake_store(items, snow_dome_parts_last_date=items[1].open_date)
    flow = AcquisitionFlow(store, 1)
    state = AcquisitionState(phase=Phase.SNOWDOME_PLACEMENT, target=items[1], target_day=20)

    flow.skip(state)

    assert [calendar_item_id for calendar_item_id, _ in store.writes] == [2]


def test_failed_write_keeps_phase_and_reports_error(fake_store):
    store = fake_store([snapshot(1, 2)])
    store.fail_ids.add(1)
    flow = AcquisitionFlow(store, 1)
    state = AcquisitionState(phase=Phase.PLACEMENT, target=store.items[1], target_day=2)

    failed = flow.confirm(state, (0, 0, 0), (0, 0, 0))

    assert failed.phase == Phase.PLACEMENT
    assert failed.failed
    assert failed.last_result.status == ResultStatus.FAILED
    assert not store.items[1].is_opened


def test_partial_bundle_write_is_surfaced(fake_store):
    items = [dome(1, 3, is_opened=True), dome(2, 10, is_opened=True), dome(3, 20)]
    store = fake_store(items, snow_dome_parts_last_date=items[2].open_date)
    store.fail_ids.add(2)
    flow = AcquisitionFlow(store, 1)
    state = AcquisitionState(phase=Phase.SNOWDOME_PLACEMENT, target=items[2], target_day=20)

    state = flow.confirm(state, (3, 0, 3), (0, 0, 0))

    assert state.phase == Phase.SNOWDOME_PLACEMENT
    assert state.last_result.is_partial
    assert state.last_result.failed_ids == [2]

    # Retrying resolves the bundle again from the store
    store.fail_ids.clear()
    state = flow.confirm(state, (3, 0, 3), (0, 0, 0))
    assert state.phase == Phase.COMPLETED
    assert store.items[2].position == (3.0, 0.0, 3.0)


def test_start_from_inventory(fake_store):
    store = fake_store([snapshot(1, 2, is_opened=True), snapshot(2, 3)])
    flow = AcquisitionFlow(store, 1)

    state = flow.start_from_inventory(AcquisitionState(), store.items[1])
    assert state.phase == Phase.PLACEMENT
    assert state.target.id == 1

    # Unopened items cannot be placed
    idle = AcquisitionState()
    assert flow.start_from_inventory(idle, store.items[2]) is idle


def test_repositioning_snowdome_targets_first_part_at_old_position(fake_store):
    here = (1.0, 0.0, 1.0)
    items = [
        dome(1, 3, is_opened=True, position=here),
        dome(2, 10, is_opened=True, position=here),
        dome(3, 20, is_opened=True, position=here),
    ]
    store = fake_store(items, snow_dome_parts_last_date=items[2].open_date)
    flow = AcquisitionFlow(store, 1)

    state = flow.start_from_inventory(AcquisitionState(), items[2])
    assert state.phase == Phase.SNOWDOME_PLACEMENT
    assert state.target.id == 1

    state = flow.confirm(state, (4, 0, 4), (0, 0, 0))
    assert state.phase == Phase.COMPLETED
    assert all(store.items[i].position == (4.0, 0.0, 4.0) for i in (1, 2, 3))


def test_return_snowdome_part_returns_whole_bundle(fake_store):
    here = (1.0, 0.0, 1.0)
    items = [
        dome(1, 3, is_opened=True, position=here),
        dome(2, 10, is_opened=True, position=here),
        snapshot(3, 11, is_opened=True, position=here),
    ]
    store = fake_store(items)
    flow = AcquisitionFlow(store, 1)

    result = flow.return_to_inventory(items[1])

    assert result.ok
    assert store.items[1].position is None
    assert store.items[2].position is None
    assert store.items[3].position == here


def test_dismiss_returns_to_idle(fake_store):
    flow = AcquisitionFlow(fake_store([]), 1)
    state = AcquisitionState(phase=Phase.GET_MODAL, target=snapshot(1, 1))
    assert flow.dismiss(state) == AcquisitionState()


def test_openable_item_and_today(fake_store):
    store = fake_store([snapshot(1, 4, hour=8), snapshot(2, 5)])
    flow = AcquisitionFlow(store, 1)

    assert flow.today_day(at(4)) == 4
    assert flow.openable_item(at(4, hour=7)) is None
    assert flow.openable_item(at(4, hour=9)).id == 1


def test_events_are_ignored_while_a_write_is_pending(fake_store):
    store = fake_store([snapshot(1, 2), snapshot(2, 3, is_opened=True, position=(1.0, 0.0, 1.0))])
    flow = AcquisitionFlow(store, 1)
    state = AcquisitionState(phase=Phase.PLACEMENT, target=store.items[1], target_day=2)
    modal = AcquisitionState(phase=Phase.GET_MODAL, target=store.items[1], target_day=2)
    reentered = []
    write = store.update_calendar_item

    def update_and_reenter(room_id, calendar_item_id, fields):
        assert flow.pending
        reentered.append((
            flow.confirm(state, (5, 0, 5), None),
            flow.skip(state),
            flow.next(modal),
            flow.return_to_inventory(store.items[2]),
        ))
        return write(room_id, calendar_item_id, fields)

    store.update_calendar_item = update_and_reenter

    done = flow.confirm(state, (1, 0, 1), None)

    assert done.phase == Phase.COMPLETED
    assert not flow.pending
    [(confirmed, skipped, nexted, returned)] = reentered
    assert confirmed is state
    assert skipped is state
    assert nexted is modal
    assert returned.status == ResultStatus.FAILED
    assert [calendar_item_id for calendar_item_id, _ in store.writes] == [1]
    assert store.items[1].position == (1.0, 0.0, 1.0)
    assert store.items[2].position == (1.0, 0.0, 1.0)


def test_skip_while_repositioning_snowdome_keeps_bundle_together(fake_store):
    here = (1.0, 0.0, 1.0)
    items = [
        dome(1, 3, is_opened=True, position=here),
        dome(2, 10, is_opened=True, position=here),
        dome(3, 20, is_opened=True, position=here),
    ]
    store = fake_store(items, snow_dome_parts_last_date=items[2].open_date)
    flow = AcquisitionFlow(store, 1)

    state = flow.start_from_inventory(AcquisitionState(), items[1])
    assert state.phase == Phase.SNOWDOME_PLACEMENT

    assert flow.skip(state) == AcquisitionState()
    assert store.writes == []
    assert all(store.items[i].position == here for i in (1, 2, 3))
