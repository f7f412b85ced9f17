from portal.models.enums import MessageStatus

from conftest import utc


def post(services, **kw):
    kw.setdefault("now", utc(2024, 1, 9))
    return services["message_service"].post_message(
        "proj-1", "cust-1", "03_Reports", kw.pop("message", "Page 2 has a typo."), **kw
    )


def test_post_message_stores_unread_and_notifies_staff(services, directory, mailer):
    result = post(services, file_name="r1.pdf", subject=" Typo ")

    assert result.success
    assert result.status_code == 201
    assert result.data.status is MessageStatus.UNREAD
    assert result.data.subject == "Typo"

    stored = directory.messages.get_by_id(result.data.id)
    assert stored is not None
    assert stored.file_name == "r1.pdf"
    assert len(mailer.sent) == 1
    assert mailer.sent[0]["Subject"] == "Customer commented on file: r1.pdf"


def test_post_message_survives_notification_failure(services, directory, mailer):
    mailer.raise_with = TimeoutError("smtp timeout")
    result = post(services)
    assert result.success
    assert directory.messages.get_by_id(result.data.id) is not None


def test_blank_message_is_rejected(services, directory, mailer):
    result = post(services, message="   ")
    assert not result.success
    assert result.status_code == 400
    assert directory.messages.list_by_project("proj-1") == []
    assert mailer.sent == []


def test_advance_status_persists_and_is_idempotent(services, directory):
    message_service = services["message_service"]
    posted = post(services).data

    read = message_service.advance_status(posted.id, MessageStatus.READ, now=utc(2024, 1, 10))
    assert read.success
    assert read.data.read_at == utc(2024, 1, 10)

    again = message_service.advance_status(posted.id, MessageStatus.READ, now=utc(2024, 1, 11))
    assert again.success
    assert again.data.read_at == utc(2024, 1, 10)

    stored = directory.messages.get_by_id(posted.id)
    assert stored.status is MessageStatus.READ
    assert stored.read_at == utc(2024, 1, 10)


def test_resolving_unread_message_stamps_read_at(services, directory):
    posted = post(services).data
    result = services["message_service"].advance_status(
        posted.id, MessageStatus.RESOLVED, now=utc(2024, 1, 12)
    )
    stored = directory.messages.get_by_id(posted.id)
    assert result.success
    assert stored.status is MessageStatus.RESOLVED
    assert stored.read_at == utc(2024, 1, 12)
    assert stored.resolved_at == utc(2024, 1, 12)


def test_moving_backward_is_a_conflict(services, directory):
    message_service = services["message_service"]
    posted = post(services).data
    message_service.advance_status(posted.id, MessageStatus.RESOLVED, now=utc(2024, 1, 12))

    result = message_service.advance_status(posted.id, MessageStatus.READ)
    assert not result.success
    assert result.status_code == 409
    assert directory.messages.get_by_id(posted.id).status is MessageStatus.RESOLVED


def test_unknown_message_is_not_found(services):
    result = services["message_service"].advance_status("missing", MessageStatus.READ)
    assert result.status_code == 404


def test_list_for_project_is_newest_first(services, directory):
    post(services, message="first", now=utc(2024, 1, 1))
    post(services, message="second", now=utc(2024, 1, 2))
    listed = services["message_service"].list_for_project("proj-1")
    assert [m.message for m in listed] == ["second", "first"]
