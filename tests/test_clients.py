import json
import unittest

import httpx

from zenith.auth import SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED, AuthClient, AuthError, display_name_from_email
from zenith.constants import MSG_REQUIRED_FIELDS, STUDY_ADVICE_EMPTY, STUDY_ADVICE_FALLBACK
from zenith.data.profiles import ApiProfileStore, ProfileStoreError, SupabaseProfileStore, build_profile_store
from zenith.services.gemini import (
    EmptyGeneration,
    GenerationError,
    GenerationUnavailable,
    TextGenerator,
    get_study_advice,
)
from zenith.settings import Settings


def _settings(**overrides):
    values = {
        "supabase_url": "https://demo.supabase.co/",
        "supabase_key": "anon-key",
        "api_base_url": "",
        "backend_session_secret": "",
        "gemini_api_key": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _gemini_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _auth_payload(user_id="u1", expires_in=3600, refresh_token="r1"):
    return {
        "access_token": f"token-{user_id}",
        "refresh_token": refresh_token,
        "expires_in": expires_in,
        "user": {"id": user_id, "email": "ana.lima@example.com", "user_metadata": {}},
    }


class TestTextGenerator(unittest.IsolatedAsyncioTestCase):
    async def test_generate_posts_prompt_and_reads_text(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("x-goog-api-key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_gemini_reply("  Estude um pouco todo dia. "))

        generator = TextGenerator("k", "gemini-test", transport=httpx.MockTransport(handler))
        text = await generator.generate("Olá", temperature=0.8, max_output_tokens=60)

        self.assertEqual(text, "Estude um pouco todo dia.")
        self.assertTrue(seen["url"].endswith("/models/gemini-test:generateContent"))
        self.assertEqual(seen["key"], "k")
        self.assertEqual(seen["body"]["generationConfig"], {"temperature": 0.8, "maxOutputTokens": 60})
        self.assertEqual(seen["body"]["contents"][0]["parts"][0]["text"], "Olá")

    async def test_missing_key_never_calls_out(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("should not be called")

        generator = TextGenerator("", "m", transport=httpx.MockTransport(handler))
        self.assertFalse(generator.enabled)
        with self.assertRaises(GenerationUnavailable):
            await generator.generate("x")

    async def test_error_responses(self) -> None:
        server_error = TextGenerator("k", "m", transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        with self.assertRaises(GenerationError):
            await server_error.generate("x")

        empty = TextGenerator("k", "m", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
        with self.assertRaises(EmptyGeneration):
            await empty.generate("x")

    async def test_unexpected_payload_shapes(self) -> None:
        not_an_object = TextGenerator("k", "m", transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[])))
        with self.assertRaises(GenerationError):
            await not_an_object.generate("x")

        odd_candidate = TextGenerator(
            "k", "m", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"candidates": ["texto"]}))
        )
        with self.assertRaises(EmptyGeneration):
            await odd_candidate.generate("x")

    async def test_study_advice_fallbacks(self) -> None:
        ok = TextGenerator("k", "m", transport=httpx.MockTransport(lambda r: httpx.Response(200, json=_gemini_reply("Revise."))))
        self.assertEqual(await get_study_advice(ok, "Física"), "Revise.")

        empty = TextGenerator("k", "m", transport=httpx.MockTransport(lambda r: httpx.Response(200, json=_gemini_reply(""))))
        self.assertEqual(await get_study_advice(empty, "Física"), STUDY_ADVICE_EMPTY)

        failing = TextGenerator("k", "m", transport=httpx.MockTransport(lambda r: httpx.Response(503)))
        with self.assertLogs("zenith.services.gemini", level="WARNING"):
            self.assertEqual(await get_study_advice(failing, "Física"), STUDY_ADVICE_FALLBACK)

        self.assertEqual(await get_study_advice(TextGenerator(None, "m"), "Física"), STUDY_ADVICE_FALLBACK)


class TestAuthClient(unittest.IsolatedAsyncioTestCase):
    async def test_sign_in_emits_event(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["grant"] = request.url.params.get("grant_type")
            seen["apikey"] = request.headers.get("apikey")
            return httpx.Response(200, json=_auth_payload())

        client = AuthClient(_settings(), transport=httpx.MockTransport(handler))
        events = []

        async def _listener(event, session):
            events.append((event, session.user_id if session else None))

        client.on_auth_state_change(_listener)
        session = await client.sign_in_with_password(" Ana.Lima@Example.com ", "secret")

        self.assertEqual(seen, {"path": "/auth/v1/token", "grant": "password", "apikey": "anon-key"})
        self.assertEqual(session.user_id, "u1")
        self.assertEqual(session.display_name, "Ana.lima")
        self.assertEqual(client.access_token(), "token-u1")
        self.assertEqual(events, [(SIGNED_IN, "u1")])

    async def test_missing_fields_rejected_before_network(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("should not be called")

        client = AuthClient(_settings(), transport=httpx.MockTransport(handler))
        with self.assertRaisesRegex(AuthError, MSG_REQUIRED_FIELDS):
            await client.sign_in_with_password("", "secret")
        with self.assertRaisesRegex(AuthError, MSG_REQUIRED_FIELDS):
            await client.sign_up("a@b.c", "")

    async def test_service_error_message_is_surfaced(self) -> None:
        transport = httpx.MockTransport(
            lambda r: httpx.Response(400, json={"error_description": "Invalid login credentials"})
        )
        client = AuthClient(_settings(), transport=transport)
        with self.assertRaisesRegex(AuthError, "Invalid login credentials"):
            await client.sign_in_with_password("a@b.c", "wrong")
        self.assertIsNone(await client.get_current_session())

    async def test_sign_up_pending_confirmation(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "u9", "email": "joao@example.com"})

        client = AuthClient(_settings(), transport=httpx.MockTransport(handler))
        self.assertIsNone(await client.sign_up("joao@example.com", "secret"))
        self.assertEqual(seen["body"]["data"], {"full_name": "Joao"})

    async def test_expired_session_refreshes(self) -> None:
        grants = []

        def handler(request: httpx.Request) -> httpx.Response:
            grants.append(request.url.params.get("grant_type"))
            if grants[-1] == "password":
                return httpx.Response(200, json=_auth_payload(expires_in=1))
            return httpx.Response(200, json=_auth_payload(refresh_token="r2"))

        client = AuthClient(_settings(), transport=httpx.MockTransport(handler))
        events = []
        client.on_auth_state_change(lambda event, session: events.append(event))

        await client.sign_in_with_password("a@b.c", "secret")
        session = await client.get_current_session()

        self.assertEqual(grants, ["password", "refresh_token"])
        self.assertEqual(session.refresh_token, "r2")
        self.assertEqual(events, [SIGNED_IN, TOKEN_REFRESHED])

    async def test_failed_refresh_signs_out(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("grant_type") == "password":
                return httpx.Response(200, json=_auth_payload(expires_in=1))
            return httpx.Response(401, json={"msg": "expired"})

        client = AuthClient(_settings(), transport=httpx.MockTransport(handler))
        events = []
        client.on_auth_state_change(lambda event, session: events.append(event))

        await client.sign_in_with_password("a@b.c", "secret")
        with self.assertLogs("zenith.auth", level="WARNING"):
            self.assertIsNone(await client.get_current_session())
        self.assertEqual(events, [SIGNED_IN, SIGNED_OUT])

    async def test_sign_out_survives_remote_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/logout"):
                return httpx.Response(500)
            return httpx.Response(200, json=_auth_payload())

        client = AuthClient(_settings(), transport=httpx.MockTransport(handler))
        events = []
        unsubscribe = client.on_auth_state_change(lambda event, session: events.append(event))

        await client.sign_in_with_password("a@b.c", "secret")
        with self.assertLogs("zenith.auth", level="WARNING"):
            await client.sign_out()
        unsubscribe()
        await client.sign_out()

        self.assertEqual(events, [SIGNED_IN, SIGNED_OUT])
        self.assertIsNone(client.access_token())

    def test_display_name_from_email(self) -> None:
        self.assertEqual(display_name_from_email("maria@x.com"), "Maria")
        self.assertEqual(display_name_from_email(""), "")


class TestSupabaseProfileStore(unittest.IsolatedAsyncioTestCase):
    async def test_get_create_upsert(self) -> None:
        requests = []
        rows = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.method == "GET":
                return httpx.Response(200, json=rows)
            return httpx.Response(201)

        store = SupabaseProfileStore(_settings(), lambda: "user-token", transport=httpx.MockTransport(handler))

        self.assertIsNone(await store.get_profile("u1"))
        get_request = requests[0]
        self.assertEqual(get_request.url.path, "/rest/v1/profiles")
        self.assertEqual(get_request.url.params.get("id"), "eq.u1")
        self.assertEqual(get_request.headers["Authorization"], "Bearer user-token")

        rows.append({"data": {"theme": "dark"}})
        self.assertEqual(await store.get_profile("u1"), {"theme": "dark"})

        await store.create_profile("u1", {"theme": "light"})
        self.assertEqual(json.loads(requests[-1].content), [{"id": "u1", "data": {"theme": "light"}}])
        self.assertEqual(requests[-1].headers["Prefer"], "return=minimal")

        await store.upsert_profile("u1", {"theme": "dark"}, "2026-03-10T12:00:00+00:00")
        self.assertIn("merge-duplicates", requests[-1].headers["Prefer"])
        self.assertEqual(json.loads(requests[-1].content)["updated_at"], "2026-03-10T12:00:00+00:00")

    async def test_falls_back_to_anon_key_and_raises_on_error(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(401, json={"message": "JWT expired"})

        store = SupabaseProfileStore(_settings(), lambda: None, transport=httpx.MockTransport(handler))
        with self.assertRaisesRegex(ProfileStoreError, "401"):
            await store.get_profile("u1")
        self.assertEqual(seen["auth"], "Bearer anon-key")


class TestApiProfileStore(unittest.IsolatedAsyncioTestCase):
    def _store(self, handler):
        settings = _settings(api_base_url="http://api.local/", backend_session_secret="s3cret")
        return ApiProfileStore(settings, transport=httpx.MockTransport(handler))

    async def test_round_trip_headers_and_status_mapping(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.headers["X-User-Id"], request.headers["X-Backend-Token"]))
            if request.method == "GET":
                return httpx.Response(404, json={"detail": "Profile not found"})
            if request.method == "POST":
                return httpx.Response(409, json={"detail": "Profile already exists"})
            return httpx.Response(200, json={"ok": True})

        store = self._store(handler)
        self.assertIsNone(await store.get_profile("u1"))
        await store.create_profile("u1", {})
        await store.upsert_profile("u1", {"theme": "dark"}, "2026-03-10T12:00:00+00:00")

        self.assertEqual([m for m, _, _ in seen], ["GET", "POST", "PUT"])
        self.assertTrue(all(user == "u1" and token == "s3cret" for _, user, token in seen))

    async def test_get_returns_document(self) -> None:
        store = self._store(lambda r: httpx.Response(200, json={"id": "u1", "data": {"theme": "dark"}}))
        self.assertEqual(await store.get_profile("u1"), {"theme": "dark"})

    async def test_server_error_raises(self) -> None:
        store = self._store(lambda r: httpx.Response(500, json={"detail": "Internal error"}))
        with self.assertRaises(ProfileStoreError):
            await store.upsert_profile("u1", {}, "now")

    def test_builder_picks_store(self) -> None:
        self.assertIsInstance(build_profile_store(_settings(), lambda: None), SupabaseProfileStore)
        api_settings = _settings(api_base_url="http://api.local", backend_session_secret="s")
        self.assertIsInstance(build_profile_store(api_settings, lambda: None), ApiProfileStore)


if __name__ == "__main__":
    unittest.main()
