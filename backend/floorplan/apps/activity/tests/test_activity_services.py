from __future__ import annotations

from floorplan.apps.activity import services as activity_services


def test_log_event_writes_record(db_session):
    event = activity_services.log_event(
        db_session,
        actor="ops@lender.test",
        entity_type="credit_line",
        entity_id="line-1",
        action="reserve",
        after={"amount_minor": 50_000_000},
        metadata={"source": "test"},
    )

    db_session.commit()
    assert event is not None
    assert event.entity_type == "credit_line"
    assert event.after == {"amount_minor": 50_000_000}
    assert event.metadata_json == {"source": "test"}


def test_list_activity_events_filters_by_entity(db_session):
    activity_services.log_event(db_session, actor=None, entity_type="dealership", entity_id="d-1", action="create")
    activity_services.log_event(db_session, actor=None, entity_type="dealership", entity_id="d-2", action="create")
    activity_services.log_event(db_session, actor=None, entity_type="credit_line", entity_id="d-1", action="open")
    db_session.commit()

    events = activity_services.list_activity_events(db_session, entity_type="dealership", entity_id="d-1")
    assert [event.action for event in events] == ["create"]

    opened = activity_services.list_activity_events(db_session, action="open")
    assert len(opened) == 1
    assert opened[0].entity_type == "credit_line"
