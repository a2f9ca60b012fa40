import unittest

import httpx

from strokecoach.agents.gateway import CapabilityGateway
from strokecoach.agents.handwriting import _parse_handwriting
from strokecoach.credentials import CredentialStore
from strokecoach.errors import ProviderResponseError
from tests.fakes import FakeClient, json_reply, mistral_on, sdk_error

VISION_REPLY = """GUESS: 好
SCORE: 86
VERDICT: Pass
FEEDBACK: Good balance between the two components.
Keep the right side a little narrower."""


def gateway_for(client, api_key="sk-test"):
    created = []

    def factory(key):
        created.append(key)
        return client

    return CapabilityGateway(CredentialStore(api_key), client_factory=factory), created


class HandwritingParseTests(unittest.TestCase):
    def test_parses_all_fields(self):
        reply = _parse_handwriting(VISION_REPLY)
        self.assertEqual(reply.guess, "好")
        self.assertEqual(reply.score, 86)
        self.assertEqual(reply.verdict, "Pass")
        self.assertIn("narrower", reply.feedback)

    def test_score_is_clamped_and_verdict_derived(self):
        reply = _parse_handwriting("SCORE: 140\nFEEDBACK: ok")
        self.assertEqual(reply.score, 100)
        self.assertEqual(reply.verdict, "Pass")

        reply = _parse_handwriting("SCORE: 42")
        self.assertEqual(reply.verdict, "Fail")

    def test_missing_score(self):
        with self.assertRaises(ProviderResponseError):
            _parse_handwriting("GUESS: A\nFEEDBACK: nice")


class GatewayTests(unittest.IsolatedAsyncioTestCase):
    async def test_text_feedback_success(self):
        client = FakeClient("Start with the top stroke.\nKeep spacing even.")
        gateway, _ = gateway_for(client)
        result = await gateway.generate_text_feedback(
            character="A", language="english", level="beginner", persona="encouraging", model="openai/gpt-4-turbo"
        )
        self.assertTrue(result.succeeded)
        self.assertEqual(result.capability, "text")
        self.assertIn("top stroke", result.narrative)
        call = client.chat.calls[0]
        self.assertEqual(call["model"], "openai/gpt-4-turbo")
        self.assertIn("CHARACTER: A", call["messages"][1]["content"])

    async def test_vision_sends_image_and_parses(self):
        client = FakeClient(VISION_REPLY)
        gateway, _ = gateway_for(client)
        result = await gateway.analyze_handwriting(
            character="好", language="chinese", level="beginner", persona="strict",
            model="openai/gpt-4-vision-preview", image=b"\x89PNG fake",
        )
        self.assertTrue(result.succeeded)
        self.assertEqual(result.score, 86)
        self.assertEqual(result.model_guess, "好")
        parts = client.chat.calls[0]["messages"][1]["content"]
        self.assertEqual(parts[1]["type"], "image_url")
        self.assertTrue(parts[1]["image_url"]["url"].startswith("data:image/png;base64,"))

    async def test_vision_without_drawing(self):
        gateway, _ = gateway_for(FakeClient(VISION_REPLY))
        result = await gateway.analyze_handwriting(
            character="A", language="english", level="beginner", persona="neutral",
            model="openai/gpt-4-vision-preview", image=None,
        )
        self.assertFalse(result.succeeded)
        self.assertEqual(result.error_kind, "ProviderResponseError")

    async def test_no_credential_is_auth_failure(self):
        gateway, created = gateway_for(FakeClient("unused"), api_key=None)
        result = await gateway.answer_question(
            "How many strokes?", character="A", language="english", level="beginner", model="m"
        )
        self.assertFalse(result.succeeded)
        self.assertEqual(result.error_kind, "AuthError")
        self.assertEqual(created, [])

    async def test_provider_401_maps_to_auth_error(self):
        gateway, _ = gateway_for(FakeClient(sdk_error(401)))
        result = await gateway.generate_text_feedback(
            character="A", language="english", level="beginner", persona="neutral", model="m"
        )
        self.assertEqual(result.error_kind, "AuthError")
        self.assertIn("401", result.error_reason)

    async def test_provider_500_maps_to_network_error(self):
        gateway, _ = gateway_for(FakeClient(sdk_error(500)))
        result = await gateway.generate_text_feedback(
            character="A", language="english", level="beginner", persona="neutral", model="m"
        )
        self.assertEqual(result.error_kind, "NetworkError")

    async def test_transport_failure(self):
        request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
        gateway, _ = gateway_for(FakeClient(httpx.ConnectError("down", request=request)))
        result = await gateway.answer_question("?", character="A", language="english", level="beginner", model="m")
        self.assertEqual(result.error_kind, "NetworkError")

    async def test_empty_reply(self):
        gateway, _ = gateway_for(FakeClient("   "))
        result = await gateway.answer_question("?", character="A", language="english", level="beginner", model="m")
        self.assertEqual(result.error_kind, "ProviderResponseError")
        self.assertEqual(result.error_reason, "No valid response from AI.")

    async def test_client_rebuilt_when_key_changes(self):
        client = FakeClient("tip")
        credentials = CredentialStore("sk-one")
        created = []

        def factory(key):
            created.append(key)
            return client

        gateway = CapabilityGateway(credentials, client_factory=factory)
        kwargs = dict(character="A", language="english", level="beginner", persona="neutral", model="m")
        await gateway.generate_text_feedback(**kwargs)
        await gateway.generate_text_feedback(**kwargs)
        credentials.set("sk-two")
        await gateway.generate_text_feedback(**kwargs)
        self.assertEqual(created, ["sk-one", "sk-two"])


class RealClientTests(unittest.IsolatedAsyncioTestCase):
    """Provider replies go through the actual mistralai client over a mock transport."""

    def gateway(self, handler):
        return CapabilityGateway(CredentialStore("sk-test"), client_factory=lambda key: mistral_on(handler))

    async def test_wrongly_shaped_reply_is_a_failed_result(self):
        for body in ({"choices": "oops"}, {"choices": [{"message": 5}]}):
            result = await self.gateway(json_reply(body)).analyze_handwriting(
                character="A", language="english", level="beginner", persona="neutral",
                model="openai/gpt-4-vision-preview", image=b"png",
            )
            self.assertFalse(result.succeeded)
            self.assertEqual(result.error_kind, "ProviderResponseError")

    async def test_unauthorized_reply(self):
        handler = lambda request: httpx.Response(401, json={"error": {"message": "No auth credentials found"}})
        result = await self.gateway(handler).generate_text_feedback(
            character="A", language="english", level="beginner", persona="neutral", model="m"
        )
        self.assertEqual(result.error_kind, "AuthError")

    async def test_server_error_reply(self):
        handler = lambda request: httpx.Response(502, text="bad gateway")
        result = await self.gateway(handler).answer_question(
            "?", character="A", language="english", level="beginner", model="m"
        )
        self.assertEqual(result.error_kind, "NetworkError")


if __name__ == "__main__":
    unittest.main()
