"""
services/notification/templates.py
Transactional email templates. Values are HTML-escaped before formatting.
"""

import html
from collections import defaultdict

from config.settings import settings


TEMPLATES = {
    "application-received": {
        "subject": "Application received: {gig_title}",
        "body": (
            "<p>Hi {talent_name},</p>"
            "<p>Thanks for applying to <strong>{gig_title}</strong>. "
            "The client will review your application and you'll hear from us when anything changes.</p>"
        ),
    },
    "new-application-client": {
        "subject": "New application for {gig_title}",
        "body": (
            "<p>Hi {client_name},</p>"
            "<p><strong>{talent_name}</strong> just applied to <strong>{gig_title}</strong>.</p>"
            '<p><a href="{dashboard_url}">Review applications</a></p>'
        ),
    },
    "application-accepted": {
        "subject": "You've been booked: {gig_title}",
        "body": (
            "<p>Hi {talent_name},</p>"
            "<p>Great news! {client_name} accepted your application for "
            "<strong>{gig_title}</strong>.</p>"
            '<p><a href="{dashboard_url}">View your dashboard</a></p>'
        ),
    },
    "booking-confirmed": {
        "subject": "Booking confirmed: {gig_title}",
        "body": (
            "<p>Hi {talent_name},</p>"
            "<p>Your booking for <strong>{gig_title}</strong> is confirmed.</p>"
            "<ul>"
            "<li>Date: {booking_date}</li>"
            "<li>Location: {location}</li>"
            "<li>Compensation: {compensation}</li>"
            "</ul>"
            '<p><a href="{dashboard_url}">View booking details</a></p>'
        ),
    },
    "application-rejected": {
        "subject": "Update on your application: {gig_title}",
        "body": (
            "<p>Hi {talent_name},</p>"
            "<p>Thank you for applying to <strong>{gig_title}</strong>. "
            "The client has decided to move forward with other talent this time.</p>"
            "<p>{reason_line}</p>"
            '<p><a href="{gigs_url}">Browse more gigs</a></p>'
        ),
    },
    "client-application-confirmation": {
        "subject": "We received your client application",
        "body": (
            "<p>Hi {first_name},</p>"
            "<p>Thanks for applying to work with TOTL Agency on behalf of "
            "<strong>{company_name}</strong>. Our team usually reviews applications within "
            "2-3 business days.</p>"
        ),
    },
    "client-application-admin": {
        "subject": "New client application: {company_name}",
        "body": (
            "<p>{first_name} {last_name} ({email}) applied for a client account for "
            "<strong>{company_name}</strong>.</p>"
            "<p>Industry: {industry}</p>"
            '<p><a href="{admin_url}">Review client applications</a></p>'
        ),
    },
    "client-application-approved": {
        "subject": "Welcome to TOTL Agency, {company_name}!",
        "body": (
            "<p>Hi {first_name},</p>"
            "<p>Your client application has been approved. You can now post gigs and "
            "review talent.</p>"
            "<p>{notes_line}</p>"
            '<p><a href="{dashboard_url}">Go to your client dashboard</a></p>'
        ),
    },
    "client-application-rejected": {
        "subject": "Update on your TOTL Agency client application",
        "body": (
            "<p>Hi {first_name},</p>"
            "<p>Thank you for your interest in TOTL Agency. We're unable to approve the "
            "application for <strong>{company_name}</strong> at this time.</p>"
            "<p>{notes_line}</p>"
        ),
    },
    "client-application-followup-applicant": {
        "subject": "Your TOTL Agency client application is still in review",
        "body": (
            "<p>Hi {first_name},</p>"
            "<p>We haven't forgotten about your application for <strong>{company_name}</strong>. "
            "Our team is still reviewing it and will be in touch soon.</p>"
        ),
    },
    "client-application-followup-admin": {
        "subject": "Reminder: client application pending for {days_pending} days",
        "body": (
            "<p>The client application from {first_name} {last_name} ({email}) for "
            "<strong>{company_name}</strong> has been pending since {submitted_at}.</p>"
            '<p><a href="{admin_url}">Review client applications</a></p>'
        ),
    },
}


def _layout(title: str, body: str) -> str:
    return f"""
    <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="background: #000; padding: 20px; border-radius: 8px 8px 0 0; text-align: center;">
            <h1 style="color: white; margin: 0; letter-spacing: 4px;">TOTL</h1>
        </div>
        <div style="background: white; padding: 24px; border: 1px solid #eee; border-radius: 0 0 8px 8px;">
            <h2 style="color: #333;">{title}</h2>
            <div style="color: #555; line-height: 1.6;">{body}</div>
            <p style="color: #999; font-size: 12px; margin-top: 24px;">
                You received this email because you have an account on TOTL Agency.
            </p>
        </div>
    </div>
    """


def render(template_name: str, **context) -> tuple[str, str]:
    """
    Render a template to (subject, html).
    Missing variables render as empty strings. Raises KeyError for an unknown template.
    """
    template = TEMPLATES[template_name]
    links = {
        "dashboard_url": f"{settings.SITE_URL}/dashboard",
        "gigs_url": f"{settings.SITE_URL}/gigs",
        "admin_url": f"{settings.SITE_URL}/admin/client-applications",
    }
    safe = defaultdict(str, {k: html.escape(str(v)) for k, v in links.items()})
    safe.update({k: html.escape(str(v)) for k, v in context.items() if v is not None})

    subject = html.unescape(template["subject"].format_map(safe))
    body = template["body"].format_map(safe)
    return subject, _layout(html.escape(subject), body)
