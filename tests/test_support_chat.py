import pytest
from django.urls import reverse

from apps.messaging import services
from apps.messaging.models import SupportChatSession, SupportMessage


@pytest.fixture
def support_session(poster):
    return services.get_user_support_chat(poster).data


@pytest.mark.django_db
class TestUserSupportChat:

    def test_first_visit_opens_a_session(self, poster):
        result = services.get_user_support_chat(poster)

        assert result.success
        session = result.data
        assert session.user_id == poster.id
        assert session.title == "Support Chat"
        assert session.status == "open"
        assert list(session.messages.all()) == []

    def test_open_session_is_reused(self, poster, support_session):
        services.send_support_message(poster, support_session.id, "Hello?")

        again = services.get_user_support_chat(poster).data

        assert again.id == support_session.id
        assert [m.content for m in again.messages.all()] == ["Hello?"]
        assert SupportChatSession.objects.filter(user=poster).count() == 1

    def test_closed_session_is_replaced_by_a_fresh_one(self, poster, support_session):
        services.close_support_chat(poster, support_session.id)

        fresh = services.get_user_support_chat(poster).data

        assert fresh.id != support_session.id
        assert fresh.status == "open"


@pytest.mark.django_db
class TestSendSupportMessage:

    def test_user_message_reaches_the_admin_inbox(self, poster, support_session, subscribe):
        inbox = subscribe("admin-support")
        personal = subscribe(f"user-{poster.id}")

        result = services.send_support_message(poster, support_session.id, "  My payment is stuck  ")

        assert result.success
        assert result.data.content == "My payment is stuck"
        events = inbox.drain()
        assert [event.name for event in events] == ["new-support-message"]
        assert events[0].payload["session_id"] == support_session.id
        assert events[0].payload["message"]["sender_id"] == poster.id
        assert [e.name for e in personal.drain() if e.name == "new-support-message"] == []

    def test_admin_reply_goes_to_the_owner(self, poster, admin_user, support_session, subscribe):
        personal = subscribe(f"user-{poster.id}")
        inbox = subscribe("admin-support")

        result = services.send_support_message(admin_user, support_session.id, "Looking into it")

        assert result.success
        assert [e.name for e in personal.drain() if e.name == "new-support-message"] == ["new-support-message"]
        assert inbox.drain() == []

    def test_sending_bumps_session_activity(self, poster, support_session):
        before = support_session.updated_at

        services.send_support_message(poster, support_session.id, "Ping")

        support_session.refresh_from_db()
        assert support_session.updated_at >= before

    def test_attachment_only_message(self, poster, support_session):
        result = services.send_support_message(
            poster, support_session.id, "", attachments=[{"url": "https://cdn.example.com/receipt.png", "type": "image/png"}]
        )

        assert result.success
        assert result.data.attachments == [
            {"url": "https://cdn.example.com/receipt.png", "name": "receipt.png", "type": "image/png"}
        ]

    def test_empty_message_is_rejected(self, poster, support_session):
        assert services.send_support_message(poster, support_session.id, "   ").kind == "validation"
        assert not SupportMessage.objects.exists()

    def test_other_users_cannot_post(self, doer, support_session):
        result = services.send_support_message(doer, support_session.id, "Let me in")

        assert result.kind == "forbidden"
        assert result.error == "You don't have permission to send messages in this chat"

    def test_missing_session(self, poster):
        result = services.send_support_message(poster, 9999, "Hello")

        assert result.kind == "not_found"
        assert result.error == "Chat session not found"

    def test_closed_session_takes_no_more_messages(self, poster, support_session):
        services.close_support_chat(poster, support_session.id)

        assert services.send_support_message(poster, support_session.id, "One more thing").kind == "conflict"


@pytest.mark.django_db
class TestAdminSupportInbox:

    def test_only_admins_see_every_chat(self, poster):
        result = services.get_all_support_chats(poster)

        assert result.kind == "forbidden"
        assert result.error == "Only admins can view all support chats"

    def test_inbox_orders_by_activity_and_counts_user_messages(self, poster, doer, admin_user):
        quiet = services.get_user_support_chat(poster).data
        busy = services.get_user_support_chat(doer).data
        services.send_support_message(poster, quiet.id, "Question")
        services.send_support_message(doer, busy.id, "First")
        services.send_support_message(doer, busy.id, "Second")
        services.send_support_message(admin_user, busy.id, "Answer")

        sessions = services.get_all_support_chats(admin_user).data

        assert [s.id for s in sessions] == [busy.id, quiet.id]
        assert {s.id: s.unread_count for s in sessions} == {busy.id: 2, quiet.id: 1}

    def test_opening_a_chat_marks_the_other_side_read(self, poster, admin_user, support_session):
        services.send_support_message(poster, support_session.id, "Help")
        services.send_support_message(admin_user, support_session.id, "Sure")

        session = services.get_support_chat_by_id(admin_user, support_session.id).data

        read = {m.content: m.is_read for m in session.messages.all()}
        assert read == {"Help": True, "Sure": False}

    def test_strangers_cannot_view_a_chat(self, doer, support_session):
        result = services.get_support_chat_by_id(doer, support_session.id)

        assert result.kind == "forbidden"
        assert result.error == "You don't have permission to view this chat"


@pytest.mark.django_db
class TestCloseSupportChat:

    def test_admin_closes_with_a_trailing_note(self, admin_user, support_session):
        result = services.close_support_chat(admin_user, support_session.id)

        assert result.success
        assert result.data.status == "closed"
        note = SupportMessage.objects.get(session=support_session)
        assert note.content == "Chat was closed by admin"
        assert note.is_read
        assert note.sender_id == admin_user.id

    def test_owner_closes_their_own_chat(self, poster, support_session):
        services.close_support_chat(poster, support_session.id)

        assert SupportMessage.objects.get(session=support_session).content == "Chat was closed by user"

    def test_strangers_cannot_close(self, doer, support_session):
        assert services.close_support_chat(doer, support_session.id).error == "You don't have permission to close this chat"
        support_session.refresh_from_db()
        assert support_session.status == "open"


@pytest.mark.django_db
class TestSupportReadState:

    def test_unread_counts_for_user_and_admin(self, poster, doer, admin_user, support_session):
        services.send_support_message(poster, support_session.id, "Hi")
        services.send_support_message(admin_user, support_session.id, "Hello")
        services.send_support_message(admin_user, support_session.id, "How can I help?")
        other = services.get_user_support_chat(doer).data
        services.send_support_message(doer, other.id, "Me too")

        assert services.get_unread_support_message_count(poster).data == {"count": 2}
        assert services.get_unread_support_message_count(admin_user).data == {"count": 2}
        assert services.get_unread_support_message_count(doer).data == {"count": 0}

    def test_mark_read_by_ids(self, poster, admin_user, support_session):
        reply = services.send_support_message(admin_user, support_session.id, "Fixed").data
        own = services.send_support_message(poster, support_session.id, "Thanks").data

        result = services.mark_support_messages_read(poster, [reply.id, own.id])

        assert result.data == {"updated": 1}
        assert services.get_unread_support_message_count(poster).data == {"count": 0}
        own.refresh_from_db()
        assert not own.is_read

    def test_mark_read_ignores_other_peoples_sessions(self, poster, doer, admin_user, support_session):
        reply = services.send_support_message(admin_user, support_session.id, "For Paula only").data

        assert services.mark_support_messages_read(doer, [reply.id]).data == {"updated": 0}
        reply.refresh_from_db()
        assert not reply.is_read

    def test_empty_id_list(self, poster):
        assert services.mark_support_messages_read(poster, []).data == {"updated": 0}


@pytest.mark.django_db
class TestSupportEndpoints:

    def test_user_chat_round_trip(self, client_for, poster, admin_user):
        chat = client_for(poster).get(reverse("support_chat"))
        assert chat.status_code == 200
        session_id = chat.data["data"]["id"]

        sent = client_for(poster).post(
            reverse("support_chat_messages", args=[session_id]), {"content": "Need a hand"}, format="json"
        )
        assert sent.status_code == 201
        assert sent.data["data"]["sender_is_admin"] is False

        unread = client_for(admin_user).get(reverse("support_unread_count"))
        assert unread.data["data"] == {"count": 1}

        inbox = client_for(admin_user).get(reverse("support_chat_inbox"))
        assert inbox.status_code == 200
        assert inbox.data["data"][0]["unread_count"] == 1
        assert inbox.data["data"][0]["recent_messages"][0]["content"] == "Need a hand"

    def test_inbox_is_admin_only(self, client_for, poster):
        assert client_for(poster).get(reverse("support_chat_inbox")).status_code == 403

    def test_blank_message_is_bad_request(self, client_for, poster, support_session):
        response = client_for(poster).post(
            reverse("support_chat_messages", args=[support_session.id]), {"content": ""}, format="json"
        )

        assert response.status_code == 400

    def test_close_and_mark_read(self, client_for, poster, admin_user, support_session):
        reply = services.send_support_message(admin_user, support_session.id, "Done").data

        marked = client_for(poster).post(reverse("support_messages_read"), {"message_ids": [reply.id]}, format="json")
        closed = client_for(poster).post(reverse("support_chat_close", args=[support_session.id]))

        assert marked.data["data"] == {"updated": 1}
        assert closed.status_code == 200
        assert closed.data["data"]["status"] == "closed"
        assert closed.data["data"]["messages"][-1]["content"] == "Chat was closed by user"
