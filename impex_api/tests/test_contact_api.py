import unittest
from email.message import Message

from fastapi.testclient import TestClient

from impex_api.app import create_app
from impex_api.config import Settings
from impex_api.dependencies import get_mail_relay
from impex_api.mail import InMemoryMailRelay


def _bodies(mime: Message) -> tuple[str, str]:
    text, html = (part.get_payload(decode=True).decode("utf-8") for part in mime.get_payload())
    return text, html


class ContactApiTests(unittest.TestCase):
    def setUp(self):
        self.settings = Settings(
            use_in_memory_backends=True,
            email_user="support@impexinfo.test",
            admin_email="admin@impexinfo.test",
        )
        self.relay = InMemoryMailRelay()
        app = create_app(self.settings)
        app.dependency_overrides[get_mail_relay] = lambda: self.relay
        self.client = TestClient(app, raise_server_exceptions=False)
        self.payload = {
            "name": "Ada",
            "email": "ada@example.test",
            "phone": "+1 555 0100",
            "message": "Need export data for coffee.",
        }

    def test_submit_sends_confirmation_and_notification(self):
        response = self.client.post("/api/contact", json=self.payload)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"success": True, "message": "Your message has been sent successfully!"},
        )
        self.assertEqual(len(self.relay.sent), 2)
        user_mail, admin_mail = self.relay.sent

        self.assertEqual(user_mail["To"], "ada@example.test")
        self.assertEqual(user_mail["Subject"], "Thank you for contacting ImpexInfo")
        self.assertEqual(user_mail["From"], "ImpexInfo Support <support@impexinfo.test>")
        self.assertEqual(user_mail["Reply-To"], "support@impexinfo.test")
        self.assertEqual(user_mail["X-Priority"], "1")
        self.assertEqual(
            user_mail["List-Unsubscribe"],
            "<mailto:support@impexinfo.test?subject=unsubscribe>",
        )
        text, html = _bodies(user_mail)
        self.assertIn("Dear Ada", text)
        self.assertIn("Need export data for coffee.", html)
        self.assertIn("+1 555 0100", html)

        self.assertEqual(admin_mail["To"], "admin@impexinfo.test")
        self.assertEqual(admin_mail["Subject"], "New Contact Form Submission from Ada")
        self.assertEqual(admin_mail["From"], "Contact Form <support@impexinfo.test>")
        text, html = _bodies(admin_mail)
        self.assertIn("New contact from Ada (ada@example.test)", text)
        self.assertIn("mailto:ada@example.test", html)
        self.assertIn("Submitted on:", html)

        self.assertEqual(self.relay.sessions_opened, 1)
        self.assertEqual(self.relay.sessions_closed, 1)

    def test_phone_is_optional(self):
        del self.payload["phone"]
        response = self.client.post("/api/contact", json=self.payload)
        self.assertEqual(response.status_code, 200)
        for mime in self.relay.sent:
            _, html = _bodies(mime)
            self.assertIn("Not provided", html)

    def test_missing_message_rejected_before_relay(self):
        for missing in ("name", "email", "message"):
            payload = dict(self.payload)
            payload[missing] = ""
            response = self.client.post("/api/contact", json=payload)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(
                response.json(),
                {"success": False, "error": "Please provide name, email and message"},
            )
        self.assertEqual(self.relay.sessions_opened, 0)
        self.assertEqual(self.relay.sent, [])

    def test_user_email_failure_is_not_fatal(self):
        self.relay.fail_recipients.add("ada@example.test")
        response = self.client.post("/api/contact", json=self.payload)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])
        self.assertEqual([m["To"] for m in self.relay.sent], ["admin@impexinfo.test"])

    def test_admin_email_failure_is_error(self):
        self.relay.fail_recipients.add("admin@impexinfo.test")
        response = self.client.post("/api/contact", json=self.payload)
        self.assertEqual(response.status_code, 500)
        payload = response.json()
        self.assertFalse(payload["success"])
        self.assertIn("admin@impexinfo.test", payload["error"])
        self.assertEqual(self.relay.sessions_closed, 1)

    def test_admin_failure_after_user_failure_is_error(self):
        self.relay.fail_recipients.update({"admin@impexinfo.test", "ada@example.test"})
        response = self.client.post("/api/contact", json=self.payload)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(self.relay.sent, [])

    def test_relay_unreachable_is_error(self):
        self.relay.fail_connect = ConnectionRefusedError("connection refused")
        response = self.client.post("/api/contact", json=self.payload)
        self.assertEqual(response.status_code, 500)
        self.assertIn("connection refused", response.json()["error"])

    def test_user_values_are_escaped_in_html(self):
        self.payload["message"] = "<script>alert(1)</script>"
        response = self.client.post("/api/contact", json=self.payload)
        self.assertEqual(response.status_code, 200)
        for mime in self.relay.sent:
            _, html = _bodies(mime)
            self.assertNotIn("<script>", html)
            self.assertIn("&lt;script&gt;", html)


if __name__ == "__main__":
    unittest.main()
