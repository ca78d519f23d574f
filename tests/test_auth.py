from datetime import timedelta

import bcrypt

from clubdocs.services.auth import AuthService


class TestPasswords:
    def test_hash_is_salted_bcrypt(self):
        hashed = AuthService.get_password_hash("s3cret!")
        assert hashed != "s3cret!"
        assert hashed != AuthService.get_password_hash("s3cret!")
        assert bcrypt.checkpw(b"s3cret!", hashed.encode("utf-8"))
        assert not bcrypt.checkpw(b"wrong", hashed.encode("utf-8"))


class TestTokens:
    def test_token_round_trip(self, coach):
        payload = AuthService.decode_token(AuthService.create_token_for_user(coach))
        assert payload["sub"] == str(coach.id)
        assert payload["role"] == "coach"

    def test_expired_token_is_rejected(self):
        token = AuthService.create_access_token({"sub": "1"}, expires_delta=timedelta(minutes=-5))
        assert AuthService.decode_token(token) is None

    def test_tampered_token_is_rejected(self, coach):
        token = AuthService.create_token_for_user(coach)
        assert AuthService.decode_token(token[:-4] + "abcd") is None


class TestIdentityLookups:
    def test_athlete_profile_resolved_by_email(self, db, athlete, athlete_user, outsider):
        assert AuthService.get_athlete_for_user(db, athlete_user).id == athlete.id
        assert AuthService.get_athlete_for_user(db, outsider) is None

    def test_inactive_user_is_not_authenticated(self, client, db, coach, auth_headers):
        headers = auth_headers(coach)
        coach.is_active = False
        db.commit()

        assert client.get("/documents/pending", headers=headers).status_code == 401

    def test_create_user(self, db):
        from clubdocs.models.user import UserRole

        user = AuthService.create_user(db, "new@club.test", "pw", role=UserRole.COACH, first_name="Sam")
        assert user.id is not None
        assert AuthService.get_user_by_email(db, "new@club.test").role == "coach"
