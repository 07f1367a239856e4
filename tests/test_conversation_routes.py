import unittest
from datetime import datetime, timedelta
from unittest import mock

from chatdesk.extensions import db
from chatdesk.models.conversation import Conversation, ConversationStatus, MessageRole
from chatdesk.utils.dates import utcnow
from tests.base import ChatdeskTestCase, provider_reply


class TestConversationRoutes(ChatdeskTestCase):

    def setUp(self):
        super().setUp()
        self.user, self.token = self.register()
        self.headers = self.auth(self.token)

    def test_requires_token(self):
        resp = self.client.get("/api/conversations")
        self.assertEqual(resp.status_code, 401)
        body = resp.get_json()
        self.assertFalse(body["success"])
        self.assertEqual(body["error"], "Token de autorización requerido")

    def test_create_defaults_to_open_web_conversation(self):
        resp = self.client.post("/api/conversations", json={}, headers=self.headers)

        self.assertEqual(resp.status_code, 201)
        conversation = resp.get_json()["data"]["conversation"]
        self.assertEqual(conversation["channel"], "WEB")
        self.assertEqual(conversation["status"], "OPEN")
        self.assertIsNone(conversation["rating"])
        self.assertEqual(conversation["userId"], self.user["id"])

    def test_timestamps_are_naive_utc(self):
        before = utcnow()
        resp = self.client.post("/api/conversations", json={}, headers=self.headers)

        created = datetime.fromisoformat(resp.get_json()["data"]["conversation"]["createdAt"])
        self.assertIsNone(created.tzinfo)
        self.assertLessEqual(before, created)
        self.assertLess(created - before, timedelta(minutes=1))

    def test_create_rejects_unknown_channel(self):
        resp = self.client.post("/api/conversations", json={"channel": "TELEGRAM"}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)

    def test_list_is_paginated_and_scoped_to_owner(self):
        other, _ = self.register(email="otro@example.com", name="Otro")
        for _ in range(3):
            self.make_conversation(self.user["id"])
        self.make_conversation(other["id"])

        resp = self.client.get("/api/conversations?page=1&limit=2", headers=self.headers)

        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()["data"]
        self.assertEqual(len(data["data"]), 2)
        self.assertEqual(data["pagination"], {"page": 1, "limit": 2, "total": 3, "totalPages": 2})

    def test_list_includes_preview_and_filters(self):
        conv = self.make_conversation(self.user["id"], channel="WHATSAPP")
        self.add_message(conv, "primero", MessageRole.USER)
        self.add_message(conv, "último", MessageRole.AI)
        self.make_conversation(self.user["id"], channel="WEB")

        resp = self.client.get("/api/conversations?channel=WHATSAPP", headers=self.headers)

        items = resp.get_json()["data"]["data"]
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["messageCount"], 2)
        self.assertEqual(items[0]["lastMessage"], "último")

    def test_list_rejects_invalid_query(self):
        for query in ("limit=500", "page=99999999999999999999", "page=100001", "minRating=1e999"):
            resp = self.client.get(f"/api/conversations?{query}", headers=self.headers)
            self.assertEqual(resp.status_code, 400, query)
            self.assertEqual(resp.get_json()["error"], "Parámetros de consulta inválidos")

    def test_search_matches_message_content(self):
        hit = self.make_conversation(self.user["id"])
        self.add_message(hit, "Quiero cambiar mi contraseña", MessageRole.USER)
        miss = self.make_conversation(self.user["id"])
        self.add_message(miss, "Horario de atención", MessageRole.USER)

        resp = self.client.get("/api/conversations/search?search=contraseña", headers=self.headers)

        ids = [c["id"] for c in resp.get_json()["data"]["data"]]
        self.assertEqual(ids, [hit.id])

    def test_search_treats_wildcards_literally(self):
        plain = self.make_conversation(self.user["id"])
        self.add_message(plain, "Hola", MessageRole.USER)
        discount = self.make_conversation(self.user["id"])
        self.add_message(discount, "¿Tienen 20% de descuento?", MessageRole.USER)

        for term, expected in (("%", [discount.id]), ("_", [])):
            resp = self.client.get(
                "/api/conversations/search", query_string={"search": term}, headers=self.headers
            )
            ids = [c["id"] for c in resp.get_json()["data"]["data"]]
            self.assertEqual(ids, expected, term)

    def test_get_returns_messages_in_order(self):
        conv = self.make_conversation(self.user["id"])
        self.add_message(conv, "uno", MessageRole.USER)
        self.add_message(conv, "dos", MessageRole.AI)

        resp = self.client.get(f"/api/conversations/{conv.id}", headers=self.headers)

        conversation = resp.get_json()["data"]["conversation"]
        self.assertEqual([m["content"] for m in conversation["messages"]], ["uno", "dos"])
        self.assertEqual(conversation["user"]["email"], "ana@example.com")

    def test_get_foreign_conversation_is_404(self):
        other, _ = self.register(email="otro@example.com", name="Otro")
        conv = self.make_conversation(other["id"])

        resp = self.client.get(f"/api/conversations/{conv.id}", headers=self.headers)
        self.assertEqual(resp.status_code, 404)

    def test_rate_closes_open_conversation(self):
        conv = self.make_conversation(self.user["id"])

        resp = self.client.post(f"/api/conversations/{conv.id}/rate", json={"rating": 4}, headers=self.headers)

        self.assertEqual(resp.status_code, 200)
        conversation = resp.get_json()["data"]["conversation"]
        self.assertEqual(conversation["rating"], 4)
        self.assertEqual(conversation["status"], "CLOSED")

    def test_rate_already_closed_conversation_stays_closed(self):
        conv = self.make_conversation(self.user["id"], status=ConversationStatus.CLOSED)

        resp = self.client.post(f"/api/conversations/{conv.id}/rate", json={"rating": 2}, headers=self.headers)

        self.assertEqual(resp.get_json()["data"]["conversation"]["status"], "CLOSED")

    def test_rate_validates_range(self):
        conv = self.make_conversation(self.user["id"])
        for bad in (0, 6, "cinco", None, 3.5, 1e999, 10 ** 30):
            resp = self.client.post(f"/api/conversations/{conv.id}/rate", json={"rating": bad}, headers=self.headers)
            self.assertEqual(resp.status_code, 400, bad)

    def test_close_is_idempotent(self):
        conv = self.make_conversation(self.user["id"])
        self.client.post(f"/api/conversations/{conv.id}/rate", json={"rating": 5}, headers=self.headers)
        db.session.expire_all()
        closed = db.session.get(Conversation, conv.id)
        updated_at = closed.updated_at

        resp = self.client.post(f"/api/conversations/{conv.id}/close", headers=self.headers)

        self.assertEqual(resp.status_code, 200)
        db.session.expire_all()
        after = db.session.get(Conversation, conv.id)
        self.assertEqual(after.status, ConversationStatus.CLOSED)
        self.assertEqual(after.rating, 5)
        self.assertEqual(after.updated_at, updated_at)

    def test_close_open_conversation(self):
        conv = self.make_conversation(self.user["id"])
        resp = self.client.post(f"/api/conversations/{conv.id}/close", headers=self.headers)
        self.assertEqual(resp.get_json()["data"]["conversation"]["status"], "CLOSED")
        self.assertIsNone(resp.get_json()["data"]["conversation"]["rating"])


class TestConversationMetrics(ChatdeskTestCase):

    def setUp(self):
        super().setUp()
        self.user, self.token = self.register()
        self.headers = self.auth(self.token)

    def test_dashboard_metrics(self):
        self.make_conversation(self.user["id"], rating=5, status="CLOSED")
        self.make_conversation(self.user["id"], rating=2, status="CLOSED")
        conv = self.make_conversation(self.user["id"])
        self.add_message(conv, "hola", MessageRole.USER)
        self.add_message(conv, "a", MessageRole.AI, prompt_used="p", response_time=100)
        self.add_message(conv, "b", MessageRole.AI, prompt_used="p", response_time=300)
        old = self.make_conversation(self.user["id"])
        old.created_at = utcnow() - timedelta(days=40)
        db.session.commit()

        resp = self.client.get("/api/conversations/metrics", headers=self.headers)

        metrics = resp.get_json()["data"]["metrics"]
        self.assertEqual(metrics["totalConversations"]["today"], 3)
        self.assertEqual(metrics["totalConversations"]["week"], 3)
        self.assertEqual(metrics["satisfactionRate"], 50.0)
        self.assertEqual(metrics["averageResponseTime"], 200)
        self.assertEqual(len(metrics["conversationTrend"]), 7)
        self.assertEqual(metrics["conversationTrend"][-1]["count"], 3)

    def test_global_metrics_include_all_users(self):
        other, _ = self.register(email="otro@example.com", name="Otro")
        self.make_conversation(self.user["id"])
        self.make_conversation(other["id"])

        mine = self.client.get("/api/conversations/metrics", headers=self.headers).get_json()
        everyone = self.client.get("/api/conversations/metrics/global", headers=self.headers).get_json()

        self.assertEqual(mine["data"]["metrics"]["totalConversations"]["today"], 1)
        self.assertEqual(everyone["data"]["metrics"]["totalConversations"]["today"], 2)

    def test_metrics_without_data(self):
        metrics = self.client.get("/api/conversations/metrics", headers=self.headers).get_json()["data"]["metrics"]
        self.assertEqual(metrics["satisfactionRate"], 0)
        self.assertEqual(metrics["averageResponseTime"], 0)

    def test_analytics_distributions_and_worst_prompts(self):
        self.make_prompt(name="Bueno", is_active=True)
        good = self.make_conversation(self.user["id"], channel="WEB")
        bad = self.make_conversation(self.user["id"], channel="WHATSAPP")

        with mock.patch("chatdesk.services.completion_service.requests.post", return_value=provider_reply("ok")):
            self.client.post(f"/api/conversations/{good.id}/messages", json={"content": "hola"}, headers=self.headers)
        self.add_message(bad, "x", MessageRole.AI, prompt_used="Malo", response_time=10)
        self.add_message(bad, "y", MessageRole.AI, prompt_used="Malo", response_time=10)

        self.client.post(f"/api/conversations/{good.id}/rate", json={"rating": 5}, headers=self.headers)
        self.client.post(f"/api/conversations/{bad.id}/rate", json={"rating": 1}, headers=self.headers)

        resp = self.client.get("/api/conversations/analytics", headers=self.headers)

        self.assertEqual(resp.status_code, 200)
        analytics = resp.get_json()["data"]["analytics"]
        ratings = {r["rating"]: r for r in analytics["ratingDistribution"]}
        self.assertEqual(ratings[5]["count"], 1)
        self.assertEqual(ratings[1]["percentage"], 50.0)
        channels = {c["channel"]: c["count"] for c in analytics["channelDistribution"]}
        self.assertEqual(channels, {"WEB": 1, "WHATSAPP": 1, "INSTAGRAM": 0})
        worst = analytics["topWorstPrompts"]
        self.assertEqual(worst[0]["prompt"], "Malo")
        self.assertEqual(worst[0]["usageCount"], 2)
        self.assertEqual(worst[0]["ratedConversations"], 1)
        self.assertEqual(worst[1]["prompt"], "Bueno")

    def test_analytics_rejects_bad_dates(self):
        resp = self.client.get("/api/conversations/analytics?startDate=ayer", headers=self.headers)
        self.assertEqual(resp.status_code, 400)


if __name__ == "__main__":
    unittest.main()
