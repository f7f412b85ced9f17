"""
Notification email bodies.

Pure functions: directory data in, ``EmailContent`` out.  Every value that
originates from a user (names, messages, file names) is HTML-escaped.
"""

from __future__ import annotations

from datetime import datetime
from html import escape
from typing import NamedTuple, Optional

from portal.models.directory import Customer, Project
from portal.models.records import CustomerMessage


class EmailContent(NamedTuple):
    subject: str
    html: str
    text: str


def _document(title: str, body: str, company_name: str) -> str:
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head>"
        "<body style=\"font-family: Arial, sans-serif; line-height: 1.6; color: #333;\">"
        "<div style=\"max-width: 600px; margin: 0 auto; padding: 20px;\">"
        f"<div style=\"background-color: #5d7a5d; color: white; padding: 20px; "
        f"text-align: center;\"><h2>{escape(title)}</h2></div>"
        f"<div style=\"background-color: #f9f9f9; padding: 20px;\">{body}</div>"
        "<div style=\"text-align: center; margin-top: 20px; color: #666; font-size: 12px;\">"
        f"<p>This is an automated notification from {escape(company_name)}.</p></div>"
        "</div></body></html>"
    )


def _line(label: str, value: Optional[str]) -> str:
    if not value:
        return ""
    return f"<p style=\"margin: 5px 0;\"><strong>{label}:</strong> {escape(value)}</p>"


def _text_line(label: str, value: Optional[str]) -> str:
    return f"{label}: {value}\n" if value else ""


def _button(href: str, label: str) -> str:
    return (
        f"<div style=\"text-align: center; margin: 20px 0;\"><a href=\"{escape(href)}\" "
        "style=\"display: inline-block; padding: 12px 24px; background-color: #5d7a5d; "
        f"color: white; text-decoration: none; border-radius: 4px;\">{label}</a></div>"
    )


def customer_upload_for_staff(
    customer: Optional[Customer],
    project: Project,
    folder_name: str,
    file_name: str,
    admin_panel_url: str,
    company_name: str,
) -> EmailContent:
    """Customer put a file in their upload zone; written in the customer's voice."""
    name = customer.name if customer else None
    number = customer.customer_number if customer else None
    email = customer.email if customer else None

    body = (
        "<p>Hello,</p><p>I have uploaded a new file to my project.</p>"
        "<div style=\"background-color: #e8f5e9; padding: 15px; margin: 15px 0;\">"
        "<p style=\"margin: 0; font-weight: bold;\">Customer Information:</p>"
        f"{_line('Name', name)}{_line('Customer Number', number)}{_line('Email', email)}"
        "</div>"
        f"{_line('Project', project.name)}{_line('Folder', folder_name)}"
        f"{_line('File Name', file_name)}"
        "<p>Please review the uploaded file in the admin panel.</p>"
        f"{_button(admin_panel_url, 'View in Admin Panel')}"
    )
    text = (
        "Hello,\n\nI have uploaded a new file to my project.\n\n"
        "Customer Information:\n"
        f"{_text_line('Name', name)}{_text_line('Customer Number', number)}"
        f"{_text_line('Email', email)}\n"
        f"Project: {project.name}\nFolder: {folder_name}\nFile Name: {file_name}\n\n"
        "Please review the uploaded file in the admin panel.\n\n"
        f"{admin_panel_url}"
    )
    return EmailContent(
        subject=f"New File Uploaded - {project.name}",
        html=_document("New File Available", body, company_name),
        text=text,
    )


def staff_upload_for_customer(
    customer: Customer,
    project: Project,
    folder_name: str,
    file_name: str,
    portal_url: str,
    company_name: str,
    deadline: Optional[datetime] = None,
    business_days: int = 5,
) -> EmailContent:
    """Staff added a file to the customer's project.

    With a *deadline* the file is a report and the message asks for review
    and approval; without one it is a plain "new file" notice.
    """
    login_url = f"{portal_url.rstrip('/')}/login"
    login_info = (
        "<div style=\"background-color: #e8f5e9; padding: 15px; margin: 15px 0;\">"
        "<p style=\"margin: 5px 0; font-weight: bold;\">Your Login Information:</p>"
        f"{_line('Customer Number', customer.customer_number)}"
        f"{_line('Project Number', project.project_number)}</div>"
    )
    login_text = (
        "Your Login Information:\n"
        f"{_text_line('Customer Number', customer.customer_number)}"
        f"{_text_line('Project Number', project.project_number)}\n"
    )

    if deadline is not None:
        due = deadline.strftime("%Y-%m-%d %H:%M %Z").strip()
        body = (
            "<p>Hello,</p><p>A new <strong>Work Report</strong> has been uploaded to "
            "your project and requires your review.</p>"
            f"{login_info}{_line('Project', project.name)}{_line('Report', file_name)}"
            f"{_line('Folder', folder_name)}"
            f"<p><strong>Important:</strong> Please review and approve this report within "
            f"{business_days} working days (by {escape(due)}). If no objection is received, "
            "the report will be automatically approved.</p>"
            f"{_button(login_url, 'Review &amp; Approve Report')}"
        )
        text = (
            f"A new work report has been uploaded for project {project.name}.\n\n"
            f"{login_text}Report: {file_name}\nFolder: {folder_name}\n\n"
            f"Please review and approve it within {business_days} working days "
            f"(by {due}). If no objection is received, it will be approved "
            "automatically.\n\n"
            f"Portal Link: {login_url}"
        )
        return EmailContent(
            subject=f"Work Report Available for Approval: {project.name}",
            html=_document("New Work Report Available", body, company_name),
            text=text,
        )

    body = (
        "<p>Hello,</p><p>A new file has been uploaded to your project.</p>"
        f"{login_info}{_line('Project', project.name)}{_line('Folder', folder_name)}"
        f"{_line('File Name', file_name)}"
        "<p>Please log in to your customer portal to view and download the file.</p>"
        f"{_button(login_url, 'Access Customer Portal')}"
    )
    text = (
        f"A new file has been uploaded for project {project.name}.\n\n"
        f"{login_text}File: {file_name}\nFolder: {folder_name}\n\n"
        "Please log in to your customer portal to view it.\n\n"
        f"Portal Link: {login_url}"
    )
    return EmailContent(
        subject=f"New File Available: {project.name}",
        html=_document("New File Available", body, company_name),
        text=text,
    )


def customer_message_for_staff(
    message: CustomerMessage,
    project: Project,
    company_name: str,
) -> EmailContent:
    if message.file_name:
        title = f"The customer commented on file: {message.file_name}"
        subject = f"Customer commented on file: {message.file_name}"
    else:
        title = "The customer sent a message for this folder"
        subject = "New customer message"

    body = (
        f"<p><strong>{escape(title)}</strong></p>"
        f"{_line('Comment subject', message.subject)}"
        f"{_line('Project', project.name)}{_line('Folder', message.folder_path)}"
        "<p><strong>Message:</strong></p>"
        "<p style=\"white-space: pre-wrap; background: #f5f5f5; padding: 12px;\">"
        f"{escape(message.message)}</p>"
        f"<p style=\"font-size: 12px; color: #666;\">Customer ID: {escape(message.customer_id)}</p>"
    )
    text = (
        f"{title}\n{_text_line('Subject', message.subject)}"
        f"Project: {project.name}\nFolder: {message.folder_path}\n\n"
        f"Message:\n{message.message}\n\nCustomer ID: {message.customer_id}"
    )
    return EmailContent(
        subject=subject,
        html=_document("New Customer Message", body, company_name),
        text=text,
    )
