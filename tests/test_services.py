"""Тесты сервисного слоя без HTTP"""

import uuid
from datetime import timedelta

import pytest

from habits_api.errors import (
    AuthenticationError,
    ConflictError,
    InactiveHabitError,
    NotFoundError,
    ValidationError,
)
from habits_api.models import Entry, Habit, HabitTag, Tag, User
from habits_api.services import habits, tags, users


@pytest.fixture
def user(app, db_session):
    created, _ = users.register(
        db_session,
        app.state.password_hasher,
        app.state.token_service,
        email="service@example.com",
        username="service_user",
        password="TestPassword123!",
    )
    return created


class TestUserService:
    def test_register_and_login(self, app, db_session, user):
        logged_in, token = users.login(
            db_session,
            app.state.password_hasher,
            app.state.token_service,
            "service@example.com",
            "TestPassword123!",
        )

        assert logged_in.id == user.id
        assert app.state.token_service.verify(token)["id"] == str(user.id)

    def test_login_wrong_password(self, app, db_session, user):
        with pytest.raises(AuthenticationError):
            users.login(
                db_session,
                app.state.password_hasher,
                app.state.token_service,
                "service@example.com",
                "wrong-password",
            )

    def test_register_conflict_leaves_session_usable(self, app, db_session, user):
        with pytest.raises(ConflictError):
            users.register(
                db_session,
                app.state.password_hasher,
                app.state.token_service,
                email="service@example.com",
                username="another_name",
                password="TestPassword123!",
            )

        assert db_session.query(User).count() == 1

    def test_profile_of_missing_user(self, db_session):
        with pytest.raises(NotFoundError):
            users.get_profile(db_session, uuid.uuid4())

    def test_deleting_user_cascades(self, db_session, user):
        tag = tags.create_tag(db_session, "cascade")
        habit = habits.create_habit(db_session, user.id, "Run", "daily", tag_ids=[tag.id])
        habits.complete_habit(db_session, user.id, habit.id)

        db_session.delete(user)
        db_session.commit()

        assert db_session.query(Habit).count() == 0
        assert db_session.query(Entry).count() == 0
        assert db_session.query(HabitTag).count() == 0
        assert db_session.query(Tag).count() == 1


class TestHabitService:
    def test_create_is_atomic(self, db_session, user):
        tag = tags.create_tag(db_session, "real")

        with pytest.raises(ValidationError):
            habits.create_habit(
                db_session, user.id, "Broken", "daily", tag_ids=[tag.id, uuid.uuid4()]
            )

        assert db_session.query(Habit).count() == 0
        assert db_session.query(HabitTag).count() == 0

    def test_update_partial_fields(self, db_session, user):
        habit = habits.create_habit(db_session, user.id, "Run", "daily", description="park")

        updated = habits.update_habit(db_session, user.id, habit.id, {"target_count": 5})

        assert updated.target_count == 5
        assert updated.description == "park"
        assert updated.name == "Run"

    def test_complete_inactive(self, db_session, user):
        habit = habits.create_habit(db_session, user.id, "Run", "daily")
        habits.update_habit(db_session, user.id, habit.id, {"is_active": False})

        with pytest.raises(InactiveHabitError):
            habits.complete_habit(db_session, user.id, habit.id)

    def test_recent_entries_limit(self, db_session, user):
        habit = habits.create_habit(db_session, user.id, "Run", "daily")
        for _ in range(15):
            habits.complete_habit(db_session, user.id, habit.id)

        _, entries = habits.get_habit(db_session, user.id, habit.id)

        assert len(entries) == habits.RECENT_ENTRIES_LIMIT

    def test_add_tags_returns_only_new_links(self, db_session, user):
        first = tags.create_tag(db_session, "first")
        second = tags.create_tag(db_session, "second")
        habit = habits.create_habit(db_session, user.id, "Run", "daily", tag_ids=[first.id])

        added = habits.add_tags_to_habit(db_session, user.id, habit.id, [first.id, second.id])

        assert added == [second.id]

    def test_remove_missing_link_returns_zero(self, db_session, user):
        habit = habits.create_habit(db_session, user.id, "Run", "daily")

        assert habits.remove_tag_from_habit(db_session, user.id, habit.id, uuid.uuid4()) == 0

    def test_foreign_habit_not_found(self, db_session, user):
        habit = habits.create_habit(db_session, user.id, "Run", "daily")

        with pytest.raises(NotFoundError):
            habits.find_owned_habit(db_session, uuid.uuid4(), habit.id)


class TestTagService:
    def test_popular_tags(self, db_session, user):
        quiet = tags.create_tag(db_session, "quiet")
        loud = tags.create_tag(db_session, "loud")
        habits.create_habit(db_session, user.id, "A", "daily", tag_ids=[loud.id])

        rows = tags.get_popular_tags(db_session)

        assert [(tag.name, count) for tag, count in rows] == [("loud", 1), ("quiet", 0)]
        assert quiet.id in {tag.id for tag, _ in rows}

    def test_delete_tag_in_use(self, db_session, user):
        tag = tags.create_tag(db_session, "busy")
        habits.create_habit(db_session, user.id, "A", "daily", tag_ids=[tag.id])

        with pytest.raises(ConflictError):
            tags.delete_tag(db_session, tag.id)

    def test_delete_missing_tag(self, db_session):
        with pytest.raises(NotFoundError):
            tags.delete_tag(db_session, uuid.uuid4())

    def test_get_tag_usage(self, db_session, user):
        tag = tags.create_tag(db_session, "used")
        habits.create_habit(db_session, user.id, "A", "daily", tag_ids=[tag.id])
        habits.create_habit(db_session, user.id, "B", "weekly", tag_ids=[tag.id])

        _, count = tags.get_tag(db_session, tag.id)

        assert count == 2


class TestTimestamps:
    def test_loaded_timestamps_are_utc_aware(self, db_session, user):
        habit = habits.create_habit(db_session, user.id, "Run", "daily")
        habits.complete_habit(db_session, user.id, habit.id)
        db_session.expire_all()

        reloaded = habits.find_owned_habit(db_session, user.id, habit.id)
        _, entries = habits.get_habit(db_session, user.id, habit.id)

        assert reloaded.created_at.tzinfo is not None
        assert reloaded.created_at.utcoffset() == timedelta(0)
        assert entries[0].completion_date.tzinfo is not None
