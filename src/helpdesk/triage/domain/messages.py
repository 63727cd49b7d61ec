"""
Message Composer
================

Customer-facing replies in Spanish and English.

Phrase pools are constants keyed by language; the composer picks from them
with an injected `random.Random` so replies are reproducible under a seed.
"""

import random
import re
from typing import Dict, List, Optional, Sequence

from helpdesk.config import Language, Priority, Sentiment, TicketCategory
from helpdesk.triage.domain.entities import (
    AssignmentResult,
    ContentAnalysis,
    KBArticleMatch,
)

# ========== Phrase pools ==========

WELCOME_TEMPLATES: Dict[Language, List[str]] = {
    Language.ES: [
        "{greeting} {name}, soy {assistant}, asistente de soporte. He registrado tu solicitud con el número **{ticket_number}**.",
        "{greeting} {name}. He recibido tu caso y le he asignado el ticket **{ticket_number}**. Soy {assistant}, tu asistente de soporte.",
        "{greeting} {name}. Gracias por contactarnos. Tu solicitud ha sido registrada como ticket **{ticket_number}**.",
    ],
    Language.EN: [
        "{greeting} {name}, I'm {assistant}, support assistant. Your request has been registered as ticket **{ticket_number}**.",
        "{greeting} {name}. I've received your case and assigned it ticket number **{ticket_number}**. I'm {assistant}, your support assistant.",
        "{greeting} {name}. Thank you for contacting us. Your request has been registered as ticket **{ticket_number}**.",
    ],
}

STATUS_MESSAGES = {
    "escalated": {
        Language.ES: "\n\nComprendo la urgencia de tu caso. He escalado tu solicitud con prioridad alta a nuestro equipo de supervisores para revisión inmediata.",
        Language.EN: "\n\nI understand the urgency of your case. I've escalated your request with high priority to our supervisors for immediate review.",
    },
    "critical": {
        Language.ES: "\n\nTu caso ha sido marcado como crítico. El equipo técnico ha sido notificado y estamos priorizando tu solicitud.",
        Language.EN: "\n\nYour case has been marked as critical. The technical team has been notified and we're prioritizing your request.",
    },
    "off_hours": {
        Language.ES: "\n\nActualmente estamos fuera de horario laboral. Tu caso ha sido registrado y será atendido a primera hora del siguiente día hábil.",
        Language.EN: "\n\nWe're currently outside business hours. Your case has been logged and will be addressed first thing next business day.",
    },
    "normal": {
        Language.ES: [
            "\n\nTu solicitud está siendo procesada por nuestro equipo. Te mantendremos informado del avance.",
            "\n\nUn miembro de nuestro equipo revisará tu caso y te contactará con actualizaciones.",
            "\n\nTu solicitud ha sido asignada a nuestro equipo técnico. Recibirás una respuesta pronto.",
        ],
        Language.EN: [
            "\n\nYour request is being processed by our team. We'll keep you informed of progress.",
            "\n\nA team member will review your case and contact you with updates.",
            "\n\nYour request has been assigned to our technical team. You'll receive a response shortly.",
        ],
    },
}

ASSIGNMENT_MESSAGES = {
    "category_and_department": {
        Language.ES: "\n\nHe clasificado tu solicitud como **{category}** y ha sido asignada al equipo de **{department}**.",
        Language.EN: "\n\nI've classified your request as **{category}** and assigned it to the **{department}** team.",
    },
    "assigned_only": {
        Language.ES: "\n\nTu solicitud ha sido asignada al equipo de **{department}**.",
        Language.EN: "\n\nYour request has been assigned to the **{department}** team.",
    },
    "assigned_to_department": {
        Language.ES: "\n\nTu caso ha sido asignado al equipo de **{department}**.",
        Language.EN: "\n\nYour case has been assigned to the **{department}** team.",
    },
    "no_agent_available": {
        Language.ES: "\n\nTu caso está en cola y será asignado al próximo agente disponible.",
        Language.EN: "\n\nYour case is in queue and will be assigned to the next available agent.",
    },
    "category": {
        Language.ES: "\n\nHe clasificado tu solicitud como: **{category}**",
        Language.EN: "\n\nI've classified your request as: **{category}**",
    },
}

ASSIGNMENT_FAILURES = {
    "no_service_officer": {
        Language.ES: "No hay oficiales de servicio disponibles",
        Language.EN: "No service officers available",
    },
    "no_agent": {
        Language.ES: "No hay agentes disponibles en este momento",
        Language.EN: "No agents available at this time",
    },
    "error": {
        Language.ES: "Error al asignar el ticket",
        Language.EN: "Error assigning ticket",
    },
}

KB_MESSAGES = {
    "suggestion": {
        Language.ES: "\n\n**Recursos relacionados que pueden ayudarte:**\n",
        Language.EN: "\n\n**Related resources that may help:**\n",
    },
    "auto_response": {
        Language.ES: "\n\n**Información relevante encontrada:**\n\n{excerpt}\n\n[Ver artículo completo]({url})\n\n¿Esto resuelve tu consulta? Si es así, puedes cerrar el ticket. Si necesitas más ayuda, responde aquí.",
        Language.EN: "\n\n**Relevant information found:**\n\n{excerpt}\n\n[View full article]({url})\n\nDoes this resolve your query? If so, you can close the ticket. If you need more help, reply here.",
    },
}

CLOSING_MESSAGES: Dict[Language, List[str]] = {
    Language.ES: [
        "\n\n¿Tienes información adicional? Puedes responder a este mensaje.",
        "\n\nSi deseas agregar más detalles, responde aquí.",
        "\n\nQuedamos atentos a cualquier información adicional.",
    ],
    Language.EN: [
        "\n\nDo you have additional information? You can reply to this message.",
        "\n\nIf you'd like to add more details, reply here.",
        "\n\nWe remain attentive to any additional information.",
    ],
}

FOLLOWUP_MESSAGES = {
    "reminder": {
        Language.ES: "Estimado cliente, soy {assistant}. Han pasado {hours} horas desde nuestra última comunicación sobre tu ticket **{ticket_number}**.\n\n¿Tu consulta fue resuelta? Si es así, puedes cerrar el ticket. Si aún requieres asistencia, por favor responde a este mensaje.",
        Language.EN: "Dear customer, this is {assistant}. It's been {hours} hours since our last communication about your ticket **{ticket_number}**.\n\nWas your issue resolved? If so, you can close the ticket. If you still need assistance, please reply to this message.",
    },
    "auto_close_warning": {
        Language.ES: "Aviso: Tu ticket **{ticket_number}** será cerrado automáticamente en 24 horas por inactividad. Si aún necesitas asistencia, por favor responde a este mensaje.",
        Language.EN: "Notice: Your ticket **{ticket_number}** will be automatically closed in 24 hours due to inactivity. If you still need assistance, please reply to this message.",
    },
    "auto_closed": {
        Language.ES: "Este ticket ha sido cerrado automáticamente por inactividad. Si necesitas reabrir el caso, crea un nuevo ticket haciendo referencia al número **{ticket_number}**.",
        Language.EN: "This ticket has been automatically closed due to inactivity. If you need to reopen the case, create a new ticket referencing ticket number **{ticket_number}**.",
    },
}

CATEGORY_LABELS: Dict[TicketCategory, Dict[Language, str]] = {
    TicketCategory.SERVICE_COMPLAINT: {Language.ES: "Queja o Reclamo", Language.EN: "Complaint"},
    TicketCategory.SUPPORT: {Language.ES: "Soporte Técnico", Language.EN: "Technical Support"},
    TicketCategory.CONSULTING: {Language.ES: "Consultoría", Language.EN: "Consulting"},
    TicketCategory.DEVELOPMENT: {Language.ES: "Desarrollo", Language.EN: "Development"},
    TicketCategory.INFRASTRUCTURE: {Language.ES: "Infraestructura", Language.EN: "Infrastructure"},
    TicketCategory.NETWORK: {Language.ES: "Redes", Language.EN: "Network"},
    TicketCategory.ACCOUNTING: {Language.ES: "Contabilidad", Language.EN: "Accounting"},
    TicketCategory.OTHER: {Language.ES: "Otro", Language.EN: "Other"},
}

# Database department name -> display label
DEPARTMENT_LABELS: Dict[str, Dict[Language, str]] = {
    "Support": {Language.ES: "Soporte", Language.EN: "Support"},
    "Development": {Language.ES: "Desarrollo", Language.EN: "Development"},
    "Consulting": {Language.ES: "Consultoría", Language.EN: "Consulting"},
    "Service": {Language.ES: "Servicio al Cliente", Language.EN: "Customer Service"},
    "Infrastructure": {Language.ES: "Infraestructura", Language.EN: "Infrastructure"},
    "Networks": {Language.ES: "Redes", Language.EN: "Networks"},
    "Accounting": {Language.ES: "Contabilidad", Language.EN: "Accounting"},
}

EMAIL_SUBJECTS = {
    "escalation": {
        Language.ES: "[URGENTE] Escalado Automático - Ticket #{ticket_number}",
        Language.EN: "[URGENT] Auto-Escalation - Ticket #{ticket_number}",
    },
    "assigned": {
        Language.ES: "Ticket Asignado (Auto) #{ticket_number}",
        Language.EN: "Ticket Assigned (Auto) #{ticket_number}",
    },
    "assistant_response": {
        Language.ES: "{assistant} ha respondido tu ticket #{ticket_number}",
        Language.EN: "{assistant} responded to your ticket #{ticket_number}",
    },
    "reminder": {
        Language.ES: "Recordatorio: Ticket #{ticket_number}",
        Language.EN: "Reminder: Ticket #{ticket_number}",
    },
    "auto_close_warning": {
        Language.ES: "Cierre automático: Ticket #{ticket_number}",
        Language.EN: "Auto-close: Ticket #{ticket_number}",
    },
    "auto_closed": {
        Language.ES: "Ticket cerrado: #{ticket_number}",
        Language.EN: "Ticket closed: #{ticket_number}",
    },
}

ESCALATION_REASONS = {
    Priority.CRITICAL: "Critical System Failure Detected",
    Sentiment.NEGATIVE: "Customer Distress/Negative Sentiment",
}

_ROLE_SUFFIX = re.compile(r"\s*\((Cliente|Client|Usuario|User|Admin|Manager)\)\s*$", re.IGNORECASE)
_PLACEHOLDER = re.compile(r"\{(\w+)\}")


# ========== Helpers ==========

def format_message(template: str, **values: object) -> str:
    """Fill {placeholders}; unknown placeholders are left as-is."""
    return _PLACEHOLDER.sub(
        lambda m: str(values[m.group(1)]) if m.group(1) in values else m.group(0),
        template,
    )


def category_label(category: TicketCategory, language: Language) -> str:
    return CATEGORY_LABELS[category][language]


def department_label(department_name: str, language: Language) -> str:
    labels = DEPARTMENT_LABELS.get(department_name)
    return labels[language] if labels else department_name


def clean_creator_name(name: Optional[str]) -> str:
    """Strip a trailing role suffix such as "(Client)"; keep the original if nothing remains."""
    name = name or ""
    cleaned = _ROLE_SUFFIX.sub("", name).strip()
    return cleaned or name


def greeting_for_hour(hour: int, language: Language) -> str:
    if language == Language.ES:
        if 5 <= hour < 12:
            return "Buenos días"
        if 12 <= hour < 19:
            return "Buenas tardes"
        return "Buenas noches"
    if 5 <= hour < 12:
        return "Good morning"
    if 12 <= hour < 18:
        return "Good afternoon"
    return "Good evening"


def escalation_reason(analysis: ContentAnalysis) -> str:
    if analysis.priority == Priority.CRITICAL:
        return ESCALATION_REASONS[Priority.CRITICAL]
    return ESCALATION_REASONS[Sentiment.NEGATIVE]


def email_subject(kind: str, language: Language, **values: object) -> str:
    return format_message(EMAIL_SUBJECTS[kind][language], **values)


class MessageComposer:
    """
    Assembles the assistant's replies.

    Args:
        rng: random source for phrase selection
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def _pick(self, options: Sequence[str]) -> str:
        return self._rng.choice(options)

    # ----- assignment -----

    @staticmethod
    def assignment_message(
        result: Optional[AssignmentResult],
        category: TicketCategory,
        language: Language
    ) -> str:
        """
        Sentence describing where the ticket went.

        When the category label and department label contain one another,
        only the department is named.
        """
        cat_label = category_label(category, language)

        if result and result.success and result.department_label:
            department = result.department_label
            cat_lower, dept_lower = cat_label.lower(), department.lower()
            if cat_lower in dept_lower or dept_lower in cat_lower:
                return format_message(
                    ASSIGNMENT_MESSAGES["assigned_only"][language],
                    department=department,
                )
            return format_message(
                ASSIGNMENT_MESSAGES["category_and_department"][language],
                category=cat_label,
                department=department,
            )

        message = format_message(ASSIGNMENT_MESSAGES["category"][language], category=cat_label)
        if result is None or not result.success:
            message += ASSIGNMENT_MESSAGES["no_agent_available"][language]
        return message

    @staticmethod
    def assigned_to_department(department: str, language: Language) -> str:
        return format_message(
            ASSIGNMENT_MESSAGES["assigned_to_department"][language],
            department=department,
        )

    # ----- knowledge base -----

    @staticmethod
    def kb_auto_response(match: KBArticleMatch, language: Language) -> str:
        return format_message(
            KB_MESSAGES["auto_response"][language],
            excerpt=match.excerpt,
            url=match.url,
        )

    @staticmethod
    def suggestions_text(matches: List[KBArticleMatch], language: Language) -> str:
        if not matches:
            return ""
        lines = "".join(f"- [{m.title}]({m.url})\n" for m in matches)
        return KB_MESSAGES["suggestion"][language] + lines

    # ----- welcome reply -----

    def status_message(
        self,
        analysis: ContentAnalysis,
        language: Language,
        business_hours: bool
    ) -> str:
        if analysis.sentiment == Sentiment.NEGATIVE:
            return STATUS_MESSAGES["escalated"][language]
        if analysis.priority == Priority.CRITICAL:
            return STATUS_MESSAGES["critical"][language]
        if not business_hours:
            return STATUS_MESSAGES["off_hours"][language]
        return self._pick(STATUS_MESSAGES["normal"][language])

    def welcome_message(
        self,
        *,
        creator_name: str,
        assistant_name: str,
        ticket_number: int,
        language: Language,
        local_hour: int,
        business_hours: bool,
        analysis: ContentAnalysis,
        assignment_message: str = "",
        kb_auto_response: str = "",
        kb_suggestions: str = "",
    ) -> str:
        """Opening + status + assignment + KB answer + suggestions + closing."""
        opening = format_message(
            self._pick(WELCOME_TEMPLATES[language]),
            greeting=greeting_for_hour(local_hour, language),
            name=clean_creator_name(creator_name),
            assistant=assistant_name,
            ticket_number=ticket_number,
        )
        status = self.status_message(analysis, language, business_hours)
        closing = self._pick(CLOSING_MESSAGES[language])
        return f"{opening}{status}{assignment_message}{kb_auto_response}{kb_suggestions}{closing}"

    # ----- follow-up -----

    @staticmethod
    def followup_message(
        kind: str,
        language: Language,
        *,
        ticket_number: int,
        assistant_name: str = "",
        hours: int = 0
    ) -> str:
        return format_message(
            FOLLOWUP_MESSAGES[kind][language],
            assistant=assistant_name,
            hours=hours,
            ticket_number=ticket_number,
        )
