# tests/test_email.py
from __future__ import annotations

from structlog.testing import capture_logs

from app.core.email import EmailService


def test_messages_are_logged_not_sent():
    with capture_logs() as logs:
        svc = EmailService(frontend_url="https://app.example.com/")
        assert svc.send_verification_code("ada@example.com", "Ada", "123456") is True

    sent = [e for e in logs if e["event"] == "email.sent"]
    assert len(sent) == 1
    assert sent[0]["to"] == "ada@example.com"
    assert sent[0]["subject"] == "Verify your email address"
    assert sent[0]["has_text"] is True
    assert svc.frontend_url == "https://app.example.com"


def test_access_request_notifications():
    with capture_logs() as logs:
        svc = EmailService()
        svc.send_access_request_notification(
            "admin@school.example.com", "Admin", "Ada Lovelace", "ada@example.com", "Sunrise", "teacher"
        )
        svc.send_access_approved("ada@example.com", "Ada", "Sunrise", "teacher")
        svc.send_access_rejected("ada@example.com", "Ada", "Sunrise", "Unknown applicant")

    subjects = [e["subject"] for e in logs if e["event"] == "email.sent"]
    assert subjects == [
        "New access request for Sunrise",
        "Your access to Sunrise was approved",
        "Your access request to Sunrise was declined",
    ]


def test_user_supplied_text_is_escaped(monkeypatch):
    svc = EmailService()
    bodies = []
    monkeypatch.setattr(svc, "send", lambda to, subject, html, text=None: bodies.append(html) or True)

    svc.send_access_request_notification(
        "admin@school.example.com",
        "Admin",
        "<script>alert(1)</script>",
        "ada@example.com",
        "Sunrise",
        "teacher",
        message='<img src=x onerror="steal()">',
    )
    svc.send_access_rejected("ada@example.com", "Ada & Co", "Sunrise", "<b>no</b>")

    assert "<script>" not in bodies[0]
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in bodies[0]
    assert "&lt;img src=x onerror=&quot;steal()&quot;&gt;" in bodies[0]
    assert "Hello Ada &amp; Co," in bodies[1]
    assert "Reason: &lt;b&gt;no&lt;/b&gt;" in bodies[1]
