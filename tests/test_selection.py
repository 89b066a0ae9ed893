"""Unit tests for SelectionSet and bulk commit."""
from discovery.selection import SelectionSet
from discovery.tracking import TrackingStore
from fakes import make_event
from storage.events_collection import EVENTS_KEY, EventsCollection


def test_toggle_and_size():
    selection = SelectionSet()

    assert selection.toggle('a') is True
    assert selection.toggle('b') is True
    assert selection.toggle('a') is False

    assert selection.size() == 1
    assert 'b' in selection
    assert 'a' not in selection


def test_select_all_with_predicate(store):
    tracking = TrackingStore(store)
    events = [make_event(name='One'), make_event(name='Two'), make_event(name='Three')]
    tracking.mark_applied(events[1].id)
    selection = SelectionSet()

    added = selection.select_all(events, lambda e: not tracking.is_tracked(e.id, 'applied'))

    assert added == 2
    assert events[1].id not in selection


def test_clear():
    selection = SelectionSet()
    selection.select_all([make_event(), make_event(name='Other')])
    selection.clear()
    assert selection.size() == 0


def test_bulk_commit_counts_existing(store):
    events_collection = EventsCollection(store)
    tracking = TrackingStore(store)
    existing = make_event(name='Spring Craft Fair', start_date='2025-05-01')
    events_collection.add(make_event(name='Spring Craft Fair', start_date='2025-05-01',
                                     location='Somewhere else'))
    fresh_one = make_event(name='Summer Market', start_date='2025-06-01')
    fresh_two = make_event(name='Fall Expo', start_date='2025-09-01')
    results = [existing, fresh_one, fresh_two]

    selection = SelectionSet()
    selection.select_all(results)
    result = selection.bulk_commit(results, events_collection, tracking)

    assert result.added == 2
    assert result.already_existed == 1
    assert result.to_dict() == {'added': 2, 'alreadyExisted': 1}
    assert all(tracking.is_tracked(e.id, 'applied') for e in results)
    assert len(store.get(EVENTS_KEY)) == 3
    assert selection.size() == 0


def test_bulk_commit_skips_ids_outside_results(store):
    selection = SelectionSet()
    selection.toggle('stale-id')
    tracking = TrackingStore(store)

    result = selection.bulk_commit([], EventsCollection(store), tracking)

    assert (result.added, result.already_existed) == (0, 0)
    assert tracking.status('stale-id') == {}


def test_committed_record_shape(store):
    events_collection = EventsCollection(store)
    event = make_event(name='Big Expo', start_date='2025-05-01', end_date='2025-05-03',
                       table_cost=None)

    record = events_collection.add(event)

    assert record['id'] != event.id
    assert record['days'] == 3
    assert record['tableCost'] == 0
    assert record['otherCosts'] == 0
    assert events_collection.exists('Big Expo', '2025-05-01') is True
    assert events_collection.exists('Big Expo', '2025-05-02') is False


def test_bulk_commit_follows_result_order(store):
    events_collection = EventsCollection(store)
    results = [make_event(name=name) for name in ('Zinnia Fair', 'Aster Market', 'Marigold Expo')]
    selection = SelectionSet()
    for event in reversed(results):
        selection.toggle(event.id)

    selection.bulk_commit(results, events_collection, TrackingStore(store))

    assert [record['name'] for record in store.get(EVENTS_KEY)] == [
        'Zinnia Fair', 'Aster Market', 'Marigold Expo'
    ]
