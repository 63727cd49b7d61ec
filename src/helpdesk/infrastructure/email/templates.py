"""
Email Templates
===============

Bilingual HTML bodies for the emails the assistant sends:
escalation alerts, assignment notices, assistant replies and
follow-up notices.
"""

import html
import re
from datetime import datetime, timezone

from helpdesk.config import Language

CONTAINER = "font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #1e293b;"
HEADER = "background-color: #0f172a; padding: 20px; text-align: center;"
HEADER_TEXT = "color: #ffffff; margin: 0; font-size: 20px;"
BODY = "padding: 24px; background-color: #ffffff;"
BUTTON = (
    "background-color: #0284c7; color: #ffffff; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block;"
)
FOOTER = "padding: 16px; text-align: center; font-size: 12px; color: #64748b;"

TRANSLATIONS = {
    Language.ES: {
        "rights": "Todos los derechos reservados.",
        "ticket_label": "Ticket #:",
        "subject_label": "Asunto:",
        "assigned": {
            "title": "Ticket Asignado",
            "greeting": "Hola",
            "body": "Se te ha asignado el siguiente ticket:",
            "body2": "Por favor revísalo y toma las acciones necesarias.",
            "button": "Abrir Ticket",
        },
        "escalation": {
            "title": "Escalación Urgente",
            "greeting": "Hola Supervisores",
            "body": "El sistema ha escalado automáticamente el siguiente ticket para atención inmediata:",
            "reason_label": "Razón:",
            "sentiment_label": "Análisis de Sentimiento:",
            "body2": "Este ticket requiere revisión e intervención urgente.",
            "button": "Ver Ticket Escalado",
        },
        "assistant_response": {
            "title": "ha respondido",
            "greeting": "Hola",
            "body": "nuestra asistente virtual, ha revisado tu ticket",
            "body2": "y te ha enviado un mensaje:",
            "body3": "Si tienes alguna pregunta adicional, puedes responder directamente en el portal.",
            "button": "Ver Ticket Completo",
            "disclaimer": (
                "Este es un mensaje automático generado por nuestro asistente virtual. "
                "Para responder, por favor usa el portal de soporte."
            ),
        },
    },
    Language.EN: {
        "rights": "All rights reserved.",
        "ticket_label": "Ticket #:",
        "subject_label": "Subject:",
        "assigned": {
            "title": "Ticket Assigned",
            "greeting": "Hello",
            "body": "You have been assigned the following ticket:",
            "body2": "Please review and take necessary action.",
            "button": "Open Ticket",
        },
        "escalation": {
            "title": "Urgent Escalation",
            "greeting": "Hello Supervisors",
            "body": "The system has automatically escalated the following ticket for immediate attention:",
            "reason_label": "Reason:",
            "sentiment_label": "Sentiment Analysis:",
            "body2": "This ticket requires urgent review and intervention.",
            "button": "View Escalated Ticket",
        },
        "assistant_response": {
            "title": "has responded",
            "greeting": "Hello",
            "body": "our virtual assistant, has reviewed your ticket",
            "body2": "and sent you a message:",
            "body3": "If you have any additional questions, you can reply directly in the portal.",
            "button": "View Full Ticket",
            "disclaimer": (
                "This is an automated message generated by our virtual assistant. "
                "To reply, please use the support portal."
            ),
        },
    },
}

_BOLD = re.compile(r"\*\*(.*?)\*\*")


def markdown_to_html(text: str) -> str:
    """Escape and render the tiny markdown subset the assistant writes (bold, newlines)."""
    escaped = html.escape(text)
    return _BOLD.sub(r"<strong>\1</strong>", escaped).replace("\n", "<br>")


def _layout(title: str, inner: str, language: Language) -> str:
    rights = TRANSLATIONS[language]["rights"]
    year = datetime.now(timezone.utc).year
    return (
        f'<div style="{CONTAINER}">'
        f'<div style="{HEADER}"><h1 style="{HEADER_TEXT}">{html.escape(title)}</h1></div>'
        f'<div style="{BODY}">{inner}</div>'
        f'<div style="{FOOTER}"><p>&copy; {year} Helpdesk. {rights}</p></div>'
        f"</div>"
    )


def _button(url: str, label: str) -> str:
    return (
        f'<div style="text-align: center; margin: 24px 0;">'
        f'<a href="{html.escape(url, quote=True)}" style="{BUTTON}">{label}</a></div>'
    )


def assigned_email(ticket_number: int, title: str, url: str, language: Language = Language.ES) -> str:
    t = TRANSLATIONS[language]
    a = t["assigned"]
    inner = (
        f"<p>{a['greeting']},</p><p>{a['body']}</p>"
        f'<div style="background-color: #f1f5f9; padding: 16px; border-radius: 6px; margin: 16px 0;">'
        f"<p><strong>{t['ticket_label']}</strong> {ticket_number}</p>"
        f"<p><strong>{t['subject_label']}</strong> {html.escape(title)}</p>"
        f"</div><p>{a['body2']}</p>{_button(url, a['button'])}"
    )
    return _layout(a["title"], inner, language)


def escalation_alert_email(
    ticket_number: int,
    reason: str,
    sentiment: str,
    url: str,
    language: Language = Language.ES,
) -> str:
    t = TRANSLATIONS[language]
    e = t["escalation"]
    inner = (
        f"<p>{e['greeting']},</p><p>{e['body']}</p>"
        f'<div style="background-color: #fee2e2; padding: 16px; border-radius: 6px; '
        f'margin: 16px 0; border: 1px solid #ef4444;">'
        f"<p><strong>{t['ticket_label']}</strong> {ticket_number}</p>"
        f"<p><strong>{e['reason_label']}</strong> "
        f'<span style="color: #dc2626; font-weight: bold;">{html.escape(reason)}</span></p>'
        f"<p><strong>{e['sentiment_label']}</strong> {html.escape(sentiment)}</p>"
        f"</div><p>{e['body2']}</p>{_button(url, e['button'])}"
    )
    return _layout(e["title"], inner, language)


def assistant_response_email(
    ticket_number: int,
    assistant_name: str,
    message: str,
    url: str,
    language: Language = Language.ES,
) -> str:
    r = TRANSLATIONS[language]["assistant_response"]
    name = html.escape(assistant_name)
    inner = (
        f"<p>{r['greeting']},</p>"
        f"<p>{name}, {r['body']} <strong>#{ticket_number}</strong> {r['body2']}</p>"
        f'<div style="background-color: #f0f9ff; padding: 20px; border-radius: 6px; '
        f'margin: 20px 0; border-left: 4px solid #0284c7;">{markdown_to_html(message)}</div>'
        f"<p>{r['body3']}</p>{_button(url, r['button'])}"
        f'<p style="font-size: 14px; color: #64748b; margin-top: 24px;"><em>{r["disclaimer"]}</em></p>'
    )
    return _layout(f"{assistant_name} {r['title']}", inner, language)


def followup_email(message: str) -> str:
    """Follow-up notices are the plain message wrapped in a paragraph."""
    return f"<p>{html.escape(message).replace(chr(10), '<br>')}</p>"
