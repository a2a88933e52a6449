import unittest
from datetime import date
from types import SimpleNamespace

from fakes import FakeGenerator, FakeProfiles, MemoryStorage

from zenith import actions
from zenith.runtime import ZenithApp
from zenith.settings import Settings


class FakeAuth:
    def __init__(self, user_id=None):
        self.session = SimpleNamespace(user_id=user_id) if user_id else None
        self.listeners = []

    def on_auth_state_change(self, callback):
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)

    async def get_current_session(self):
        return self.session

    def access_token(self):
        return None

    async def emit(self, event, user_id=None):
        self.session = SimpleNamespace(user_id=user_id) if user_id else None
        for callback in list(self.listeners):
            await callback(event, self.session)


class TestZenithApp(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.settings = Settings(_env_file=None, sync_debounce_seconds=0.01)
        self.profiles = FakeProfiles()
        self.generator = FakeGenerator(["Bom dia, Ana."])

    def _app(self, auth):
        self.storage = MemoryStorage()
        return ZenithApp(
            self.settings,
            auth=auth,
            profiles=self.profiles,
            local_storage=self.storage,
            generator=self.generator,
        )

    async def test_start_without_session_waits(self) -> None:
        app = self._app(FakeAuth())
        self.assertIsNone(await app.start())
        self.assertFalse(app.ready)
        await app.close()
        self.assertTrue(self.storage.disposed)

    async def test_session_lifecycle(self) -> None:
        auth = FakeAuth("u1")
        app = self._app(auth)

        result = await app.start()
        self.assertTrue(result.is_new_account)
        self.assertTrue(app.ready)

        app.update(actions.set_user_name, "Ana")
        app.update(actions.add_water, 500, "2026-03-10")
        app.update(actions.update_meal, 1, "lunch", "Arroz, feijão")
        await app.close()

        self.assertEqual(self.profiles.upserts[-1][1]["user"]["name"], "Ana")
        self.assertEqual(app.hydration(date(2026, 3, 10))["today_amount"], 500)
        self.assertEqual(app.summary(date(2026, 3, 10))["water_amount"], 500)
        self.assertEqual([item["name"] for item in app.shopping_list()], ["Arroz", "Feijão"])

    async def test_auth_events_drive_sync(self) -> None:
        auth = FakeAuth()
        app = self._app(auth)

        await auth.emit("SIGNED_IN", "u1")
        self.assertTrue(app.ready)
        self.assertEqual(app.sync.user_id, "u1")

        await auth.emit("SIGNED_OUT")
        self.assertFalse(app.ready)
        self.assertFalse(app.state["isLoggedIn"])
        await app.close()
        self.assertEqual(auth.listeners, [])

    async def test_quote_and_advice(self) -> None:
        app = self._app(FakeAuth("u1"))
        await app.start()
        app.update(actions.set_user_name, "Ana")

        self.assertEqual(await app.motivational_quote(), "Bom dia, Ana.")
        self.assertEqual(await app.motivational_quote(), "Bom dia, Ana.")
        self.assertEqual(len(self.generator.calls), 1)

        self.assertEqual(await app.study_advice("Física"), "Siga em frente.")
        await app.close()


if __name__ == "__main__":
    unittest.main()
