"""
Lexicon Tables
==============

Static keyword tables driving the content analyzer, the agent matcher and
the knowledge-base responder. All entries are lower-case and matched as
case-insensitive substrings unless stated otherwise.
"""

import re
from typing import Dict, FrozenSet, List, Optional, Tuple

from helpdesk.config import Priority, TicketCategory

# ========== Category keywords ==========

CATEGORY_KEYWORDS: Dict[TicketCategory, Tuple[str, ...]] = {
    # Complaints and cancellations
    TicketCategory.SERVICE_COMPLAINT: (
        "cancelar", "cancel", "cancellation", "cancelación",
        "terminar contrato", "end contract", "terminate",
        "queja", "reclamo", "complaint", "reclamación",
        "insatisfecho", "unsatisfied", "dissatisfied", "descontento", "unhappy",
        "decepcionado", "disappointed", "engañaron", "deceived", "scammed",
        "mal servicio", "bad service", "poor service", "terrible service",
        "reembolso", "refund", "devolver dinero", "money back",
        "inaceptable", "unacceptable",
    ),
    TicketCategory.SUPPORT: (
        # ERP errors
        "netsuite", "error", "script", "workflow", "saved search", "suitelet",
        "restlet", "suitescript", "scheduled script",
        # Access / login
        "login", "password", "contraseña", "acceso", "access", "permission",
        "permiso", "locked", "bloqueado", "2fa", "authentication",
        # Performance
        "slow", "lento", "performance", "rendimiento", "timeout", "crash",
        "loading", "cargando", "freeze", "congelado",
        # General help
        "how", "cómo", "como", "question", "pregunta", "help", "ayuda",
        "tutorial", "guide", "guía", "explain", "explicar",
    ),
    # Consulting and invoicing
    TicketCategory.CONSULTING: (
        "consultoría", "consulting", "asesoría", "advisory", "capacitación",
        "training", "curso", "workshop", "taller", "implementación",
        "implementation", "migración", "migration",
        "factura electrónica", "electronic invoice", "cfdi", "facturación",
        "billing", "invoice", "factura", "impuestos", "taxes", "iva",
        "retenciones", "nota de crédito", "credit note", "nota de débito",
        "debit note", "pago", "payment", "suscripción", "subscription",
        "precio", "price",
    ),
    # Development and integrations
    TicketCategory.DEVELOPMENT: (
        "development", "desarrollo", "code", "código", "programming", "bug",
        "fix", "deploy", "deployment", "release", "branch", "merge", "commit",
        "github", "git", "customization", "personalización", "integration",
        "integración", "api", "webhook", "sync", "sincronizar", "connect",
        "conectar", "salesforce", "shopify", "third-party", "feature",
        "mejora", "improvement", "solicitud", "new feature",
    ),
    TicketCategory.INFRASTRUCTURE: (
        "infraestructura", "infrastructure", "servidor", "server", "hardware",
        "datacenter", "centro de datos", "cloud", "nube", "aws", "azure",
        "google cloud", "hosting", "backup", "respaldo", "restore", "storage",
        "almacenamiento", "disco", "disk", "memoria", "memory", "ram", "cpu",
    ),
    TicketCategory.NETWORK: (
        "red", "redes", "network", "networking", "conexión", "connection",
        "internet", "wifi", "vpn", "firewall", "router", "switch", "dns", "ip",
        "dhcp", "proxy", "latencia", "latency", "ping", "conectividad",
        "connectivity", "bandwidth", "ancho de banda",
    ),
    TicketCategory.ACCOUNTING: (
        "contabilidad", "accounting", "contador", "accountant", "balance",
        "estados financieros", "financial statements", "libro mayor", "ledger",
        "diario", "journal", "conciliación", "reconciliation",
        "cierre contable", "closing", "activo", "asset", "pasivo", "liability",
        "capital", "equity", "depreciación", "depreciation", "amortización",
        "amortization",
    ),
}

# First match wins; complaints outrank any technical keyword.
CATEGORY_PRIORITY_ORDER: Tuple[TicketCategory, ...] = (
    TicketCategory.SERVICE_COMPLAINT,
    TicketCategory.INFRASTRUCTURE,
    TicketCategory.NETWORK,
    TicketCategory.ACCOUNTING,
    TicketCategory.CONSULTING,
    TicketCategory.DEVELOPMENT,
    TicketCategory.SUPPORT,
)

# ========== Category -> department ==========

# Department names as stored in the database. None routes straight to a
# service officer.
CATEGORY_DEPARTMENT_MAP: Dict[TicketCategory, Optional[str]] = {
    TicketCategory.SERVICE_COMPLAINT: None,
    TicketCategory.SUPPORT: "Support",
    TicketCategory.CONSULTING: "Consulting",
    TicketCategory.DEVELOPMENT: "Development",
    TicketCategory.INFRASTRUCTURE: "Infrastructure",
    TicketCategory.NETWORK: "Networks",
    TicketCategory.ACCOUNTING: "Accounting",
    TicketCategory.OTHER: None,
}

SERVICE_DEPARTMENT = "Service"

# ========== Priority keywords ==========

PRIORITY_KEYWORDS: Dict[Priority, Tuple[str, ...]] = {
    Priority.CRITICAL: (
        "sistema caído", "system down", "down", "sin servicio", "not working",
        "no funciona", "emergency", "emergencia", "production", "producción",
        "crash", "broken", "roto", "all users", "todos los usuarios",
        "parada total", "complete stop", "sin operación", "no operation",
    ),
    Priority.HIGH: (
        "urgente", "urgent", "crítico", "critical", "asap", "immediately",
        "inmediatamente", "blocking", "bloqueando", "important", "importante",
        "priority", "prioridad", "hoy", "today", "ahora", "now",
    ),
    Priority.LOW: (
        "pregunta", "question", "duda", "doubt", "when possible",
        "cuando puedas", "minor", "menor", "cosmetic", "estético",
        "no urgente", "not urgent", "bajo prioridad", "low priority",
    ),
}

PRIORITY_ORDER: Tuple[Priority, ...] = (Priority.CRITICAL, Priority.HIGH, Priority.LOW)

# ========== Sentiment ==========

NEGATIVE_SENTIMENT_KEYWORDS: Tuple[str, ...] = (
    # es
    "terrible", "pésimo", "inútil", "basura", "vergüenza", "horror",
    "horrible", "inaceptable", "ridículo", "peor", "asqueroso", "patético",
    "decepcionado", "decepcionante", "frustrado", "frustración", "enfadado",
    "enojado", "molesto", "furioso", "harto", "cansado de", "no agusto",
    "incómodo", "engañado", "estafado", "timado",
    # en
    "awful", "useless", "garbage", "shame", "unacceptable", "ridiculous",
    "worst", "disgusting", "pathetic", "disappointed", "disappointing",
    "frustrated", "frustration", "angry", "mad", "upset", "furious", "fed up",
    "tired of", "uncomfortable", "deceived", "scammed", "cheated",
)

# ========== Language detection ==========

ENGLISH_FUNCTION_WORDS = re.compile(
    r"\b(the|is|are|was|were|have|has|will|can|could|would|should|my|your|this|"
    r"that|with|from|they|been|more|when|who|which|their|if|do|does)\b",
    re.IGNORECASE,
)
SPANISH_FUNCTION_WORDS = re.compile(
    r"\b(el|la|los|las|un|una|es|son|fue|fueron|tiene|tengo|sera|puede|podria|"
    r"como|cuando|donde|quien|que|con|para|por|su|sus|mi|mis)\b",
    re.IGNORECASE,
)

# ========== Agent skill matching ==========

SKILL_KEYWORD_MIN_LENGTH = 4
SKILL_NOISE_WORDS: FrozenSet[str] = frozenset({
    "error", "problema", "sistema", "ayuda", "favor", "gracias", "ticket",
    "soporte", "system", "support", "problem", "please", "thanks",
})

# ========== Knowledge base ==========

KB_TERM_MIN_LENGTH = 5
KB_MAX_TERMS = 8
KB_MIN_MATCHING_TERMS = 2
KB_MIN_RELEVANCE_SCORE = 30
KB_TITLE_WEIGHT = 30
KB_BODY_WEIGHT = 10

KB_STOP_WORDS: FrozenSet[str] = frozenset({
    # es
    "sistema", "error", "problema", "datos", "información", "usuario", "caso",
    "tipo", "estado", "forma", "modo", "parte", "proceso", "solicitud",
    "ticket", "soporte", "ayuda", "favor", "gracias", "hola", "buenas",
    "correo", "email", "necesito", "tengo", "quiero", "puedo", "cuando",
    "donde", "como", "porque", "mensaje", "archivo", "adjunto", "enviar",
    "guardar", "crear", "cambiar", "actualizar", "resultado", "esperado",
    "impacto", "comportamiento",
    # en
    "system", "problem", "data", "information", "user", "case", "type",
    "state", "form", "mode", "part", "process", "request", "support", "help",
    "please", "thanks", "hello", "mail", "need", "have", "want", "when",
    "where", "what", "because", "message", "file", "attachment", "send",
    "save", "create", "change", "update", "result", "expected", "impact",
    "behavior",
})

# Non-word characters; \w already keeps accented Latin letters.
NON_WORD = re.compile(r"[^\w\s]")


def tokenize(text: str) -> List[str]:
    """Lower-case, replace punctuation with spaces and split on whitespace."""
    return NON_WORD.sub(" ", text.lower()).split()
