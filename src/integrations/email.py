"""
Email dispatch through the SendGrid v3 HTTP API.
Sends the inspection report to the sales representative, customer and support.
"""

import base64
from html import escape
from typing import Dict, List, Optional

import requests

from src.schemas.models import Inspection, Phase
from utils.config import config
from utils.logger import setup_logger

logger = setup_logger(__name__, level=config.log_level, component="EMAIL")


# ============================================================================
# MESSAGE STRINGS
# ============================================================================

TRANSLATIONS = {
    "en": {
        "customer_subject": "Your Tesla Pre-Delivery Inspection Report - Order {order}",
        "greeting": "Dear {name},",
        "valued_customer": "Valued Customer",
        "intro": "Your vehicle delivery inspection has been completed.",
        "report_link": "Download Full Report (PDF)",
        "vehicle_info": "Vehicle Information",
        "order_number": "Order Number",
        "model": "Model",
        "color": "Color",
        "total_items": "Total Items",
        "completed_items": "Completed",
        "failed_items": "Failed Items",
        "on_delivery": "On Delivery Phase",
        "test_drive": "Test Drive Phase",
        "failed_banner": "This vehicle has {count} failed inspection item(s) that require attention before delivery.",
        "passed_banner": "All inspection items have passed successfully. The vehicle is ready for delivery.",
        "questions": "If you have any questions about this report, please contact your sales representative.",
        "signature": "Best regards,\nDelivery Team",
    },
    "de": {
        "customer_subject": "Ihr Auslieferungsprüfbericht - Bestellung {order}",
        "greeting": "Liebe/r {name},",
        "valued_customer": "Kunde/Kundin",
        "intro": "Ihre Auslieferungsprüfung wurde abgeschlossen.",
        "report_link": "Prüfbericht herunterladen (PDF)",
        "vehicle_info": "Fahrzeuginformationen",
        "order_number": "Bestellnummer",
        "model": "Modell",
        "color": "Farbe",
        "total_items": "Geprüfte Punkte gesamt",
        "completed_items": "Abgeschlossen",
        "failed_items": "Beanstandete Punkte",
        "on_delivery": "Auslieferungsphase",
        "test_drive": "Probefahrtphase",
        "failed_banner": "Bei diesem Fahrzeug wurden {count} Prüfpunkte beanstandet, die vor der Auslieferung behoben werden müssen.",
        "passed_banner": "Alle Prüfpunkte wurden bestanden. Das Fahrzeug ist bereit zur Auslieferung.",
        "questions": "Bei Fragen zu diesem Bericht wenden Sie sich bitte an Ihren Verkaufsberater.",
        "signature": "Mit freundlichen Grüßen,\nIhr Auslieferungsteam",
    },
    "fr": {
        "customer_subject": "Votre rapport d'inspection de livraison - Commande {order}",
        "greeting": "Cher/Chère {name},",
        "valued_customer": "Client(e)",
        "intro": "L'inspection de livraison de votre véhicule est terminée.",
        "report_link": "Télécharger le rapport complet (PDF)",
        "vehicle_info": "Informations sur le véhicule",
        "order_number": "Numéro de commande",
        "model": "Modèle",
        "color": "Couleur",
        "total_items": "Points inspectés",
        "completed_items": "Terminés",
        "failed_items": "Points en échec",
        "on_delivery": "Phase de livraison",
        "test_drive": "Phase d'essai routier",
        "failed_banner": "Ce véhicule présente {count} point(s) en échec à traiter avant la livraison.",
        "passed_banner": "Tous les points d'inspection sont conformes. Le véhicule est prêt à être livré.",
        "questions": "Pour toute question sur ce rapport, veuillez contacter votre conseiller commercial.",
        "signature": "Cordialement,\nL'équipe de livraison",
    },
}

SUPPORTED_LANGUAGES = tuple(TRANSLATIONS.keys())


def _strings(language: str) -> Dict[str, str]:
    return TRANSLATIONS.get(language, TRANSLATIONS["en"])


# ============================================================================
# RENDERING
# ============================================================================

def render_report_text(inspection: Inspection, pdf_link: str, language: str = "en") -> str:
    """Plain-text body of the report email."""
    t = _strings(language)
    banner = (
        t["failed_banner"].format(count=inspection.failed_items)
        if inspection.failed_items
        else t["passed_banner"]
    )
    lines = [
        t["greeting"].format(name=inspection.customer_name or t["valued_customer"]),
        "",
        t["intro"],
        "",
        f"{t['vehicle_info']}:",
        f"- {t['order_number']}: {inspection.order_number}",
        f"- VIN: {inspection.vin}",
        f"- {t['model']}: {inspection.vehicle_model}",
        f"- {t['color']}: {inspection.vehicle_color}",
        f"- {t['total_items']}: {inspection.total_items}",
        f"- {t['completed_items']}: {inspection.completed_items}",
        f"- {t['failed_items']}: {inspection.failed_items}",
        f"- {t['on_delivery']}: {inspection.phase_status(Phase.ON_DELIVERY).value}",
        f"- {t['test_drive']}: {inspection.phase_status(Phase.TEST_DRIVE).value}",
        "",
        banner,
        "",
        f"{t['report_link']}: {pdf_link}",
        "",
        t["questions"],
        "",
        t["signature"],
    ]
    return "\n".join(lines)


def render_report_html(
    inspection: Inspection,
    pdf_link: str,
    language: str = "en",
    headline: str = "Professional Vehicle Inspection Completed",
) -> str:
    """HTML body of the report email."""
    t = _strings(language)

    def row(label: str, value, color: Optional[str] = None) -> str:
        style = "padding: 8px; border: 1px solid #ddd;"
        value_style = f"{style} color: {color};" if color else style
        return (
            f'<tr><td style="{style}"><strong>{escape(label)}:</strong></td>'
            f'<td style="{value_style}">{escape(str(value))}</td></tr>'
        )

    if inspection.failed_items:
        banner = (
            '<div style="background: #fff3cd; border: 1px solid #ffeaa7; padding: 15px; '
            'margin: 20px 0; border-radius: 8px; color: #856404;">'
            f"<strong>⚠️ {escape(t['failed_banner'].format(count=inspection.failed_items))}</strong></div>"
        )
    else:
        banner = (
            '<div style="background: #d4edda; border: 1px solid #c3e6cb; padding: 15px; '
            'margin: 20px 0; border-radius: 8px; color: #155724;">'
            f"<strong>✅ {escape(t['passed_banner'])}</strong></div>"
        )

    rows = "".join([
        row(t["order_number"], inspection.order_number),
        row("VIN", inspection.vin),
        row(t["model"], inspection.vehicle_model),
        row(t["color"], inspection.vehicle_color),
        row(t["total_items"], inspection.total_items),
        row(t["completed_items"], inspection.completed_items, "#28a745"),
        row(t["failed_items"], inspection.failed_items, "#dc3545"),
        row(t["on_delivery"], inspection.phase_status(Phase.ON_DELIVERY).value),
        row(t["test_drive"], inspection.phase_status(Phase.TEST_DRIVE).value),
    ])
    greeting = t["greeting"].format(name=inspection.customer_name or t["valued_customer"])
    signature = escape(t["signature"]).replace("\n", "<br>")

    return f"""<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="background: #000; color: white; padding: 20px; text-align: center;">
      <h1>Pre-Delivery Inspection Report</h1>
      <p>{escape(headline)}</p>
    </div>
    <div style="padding: 20px; max-width: 600px; margin: 0 auto;">
      <p>{escape(greeting)}</p>
      <p>{escape(t["intro"])}</p>
      <h3>{escape(t["vehicle_info"])}</h3>
      <table style="width: 100%; border-collapse: collapse;">{rows}</table>
      {banner}
      <p style="text-align: center; margin: 30px 0;">
        <a href="{escape(pdf_link, quote=True)}" style="background: #dc3545; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px;">{escape(t["report_link"])}</a>
      </p>
      <p>{escape(t["questions"])}</p>
      <p style="margin-top: 30px; font-style: italic;">{signature}</p>
    </div>
  </body>
</html>"""


# ============================================================================
# DISPATCH
# ============================================================================

class EmailDispatcher:
    """SendGrid mail sender. Without an API key, messages are logged and reported as not sent."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        from_email: Optional[str] = None,
        support_email: Optional[str] = None,
    ):
        self.logger = logger
        self.api_key = api_key if api_key is not None else config.sendgrid_api_key
        self.session = session or requests.Session()
        self.from_email = from_email or config.from_email
        self.support_email = support_email if support_email is not None else config.support_email

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def send(
        self,
        recipients: List[str],
        subject: str,
        html: str,
        text: str,
        attachments: Optional[List[Dict[str, str]]] = None,
    ) -> bool:
        """
        Send one message.

        Args:
            recipients: To addresses
            subject: Subject line
            html: HTML body
            text: Plain-text body
            attachments: Optional list of {"content": bytes, "filename", "type"}

        Returns:
            True if the provider accepted the message
        """
        if not self.enabled:
            self.logger.info(f"Email disabled, would send '{subject}' to {', '.join(recipients)}")
            return False

        payload = {
            "personalizations": [{"to": [{"email": r} for r in recipients]}],
            "from": {"email": self.from_email},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text},
                {"type": "text/html", "value": html},
            ],
        }
        if attachments:
            payload["attachments"] = [
                {
                    "content": base64.b64encode(a["content"]).decode("ascii"),
                    "filename": a["filename"],
                    "type": a.get("type", "application/octet-stream"),
                    "disposition": "attachment",
                }
                for a in attachments
            ]

        try:
            response = self.session.post(
                config.sendgrid_api_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=config.api_timeout,
            )
        except requests.RequestException as e:
            self.logger.error(f"SendGrid request failed for '{subject}': {e}")
            return False

        if response.status_code not in (200, 202):
            self.logger.error(f"SendGrid error {response.status_code} for '{subject}': {response.text[:200]}")
            return False

        self.logger.info(f"✓ Email sent: '{subject}' -> {', '.join(recipients)}")
        return True

    def send_inspection_report(
        self,
        inspection: Inspection,
        pdf_link: str,
        language: str = "en",
    ) -> Dict[str, bool]:
        """
        Fan out the report email.

        The representative always receives it (default address when unknown),
        the customer when an address is present, and support when configured.

        Returns:
            Dict of recipient category -> sent flag
        """
        order = inspection.order_number
        rep_email = inspection.sales_rep_email or config.default_sales_rep_email
        text = render_report_text(inspection, pdf_link, language="en")
        html = render_report_html(inspection, pdf_link, language="en")

        results = {
            "representative": self.send(
                [rep_email],
                f"Tesla Pre-Delivery Inspection Report - Order {order}",
                html,
                text,
            )
        }

        if inspection.customer_email:
            results["customer"] = self.send(
                [inspection.customer_email],
                _strings(language)["customer_subject"].format(order=order),
                render_report_html(inspection, pdf_link, language, headline="Your Vehicle Inspection Report"),
                render_report_text(inspection, pdf_link, language),
            )

        if self.support_email:
            results["support"] = self.send(
                [self.support_email],
                f"[TRACKING] Inspection Report Generated - {order}",
                html,
                text,
            )

        self.logger.info(
            f"Report email fan-out for {order}: "
            + ", ".join(f"{k}={'sent' if v else 'not sent'}" for k, v in results.items())
        )
        return results

    def send_phase_notification(self, inspection: Inspection, phase: Phase) -> bool:
        """Notify the representative that a phase has been signed off."""
        rep_email = inspection.sales_rep_email or config.default_sales_rep_email
        subject = f"{Phase(phase).label} Phase Completed - Order {inspection.order_number}"
        message = (
            f"The {Phase(phase).label} inspection phase has been completed "
            f"for order {inspection.order_number}."
        )
        html = (
            '<div style="font-family: Arial, sans-serif;">'
            f"<h2>{escape(subject)}</h2><p>{escape(message)}</p>"
            f"<p>VIN: {escape(inspection.vin)}</p></div>"
        )
        return self.send([rep_email], subject, html, message)

    def health_check(self):
        if not self.enabled:
            return True, "Not configured (emails are logged only)"
        return True, f"SendGrid, from {self.from_email}"


def emails_delivered(results: Dict[str, bool]) -> bool:
    """Report delivery succeeded when the representative and (if addressed) the customer were sent."""
    return results.get("representative", False) and results.get("customer", True)
