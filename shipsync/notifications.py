from __future__ import annotations

from html import escape
from typing import Optional

from .clock import Clock
from .domain import BatchReport, ResultKind
from .gateways import Notifier
from .logging import ServiceLogger


class NotificationService:
    """Renders operator mails and hands them to a notifier.

    Delivery is fire-and-forget: a failing notifier is logged and never
    propagates into the reconciliation that triggered it.
    """

    def __init__(self, notifier: Optional[Notifier], clock: Clock) -> None:
        self._notifier = notifier
        self._clock = clock
        self._log = ServiceLogger("notifications")

    def report(self, report: BatchReport, supplier_name: str, vendors: str = "") -> None:
        if not report.should_notify:
            return
        updated = report.fulfilled + report.partially_fulfilled
        subject = f"Tracking Sync {supplier_name}: {updated} orders updated"
        if report.critical_mismatches:
            subject += " - CRITICAL ERROR"
        self._deliver(subject, self.render_report(report, supplier_name, vendors))

    def error(self, subject: str, detail: str, order_name: Optional[str] = None) -> None:
        html = [f"<h2>{escape(subject)}</h2>"]
        if order_name:
            html.append(f"<p><strong>Order:</strong> {escape(order_name)}</p>")
        html.append(f"<p><strong>Error:</strong> {escape(detail)}</p>")
        html.append(f"<p><strong>Time:</strong> {self._clock.now().isoformat()}</p>")
        self._deliver(subject, "\n".join(html))

    def render_report(self, report: BatchReport, supplier_name: str, vendors: str = "") -> str:
        parts = [
            f"<h2>{escape(supplier_name)} Tracking Sync Report</h2>",
            f"<p><strong>Time:</strong> {self._clock.now().isoformat()}</p>",
        ]
        if report.dry_run:
            parts.append("<p><strong>Dry run:</strong> no fulfillments were submitted.</p>")
        parts.append(
            "<ul>"
            f"<li>Processed: {report.processed}</li>"
            f"<li>Fulfilled: {report.fulfilled}</li>"
            f"<li>Partially fulfilled: {report.partially_fulfilled}</li>"
            f"<li>Skipped: {report.skipped}</li>"
            f"<li>Errors: {report.errors}</li>"
            f"<li>Critical mismatches: {report.critical_mismatches}</li>"
            "</ul>"
        )
        if report.partially_fulfilled:
            brands = f" ({escape(vendors)})" if vendors else ""
            parts.append(
                f"<p>{report.partially_fulfilled} orders held products from several suppliers. "
                f"Only {escape(supplier_name)} products{brands} were marked as shipped.</p>"
            )
        if report.issues:
            rows = []
            for issue in report.issues:
                critical = issue.kind == ResultKind.CRITICAL_MISMATCH
                style = ' style="background-color: #ffcccc;"' if critical else ""
                rows.append(
                    f"<tr{style}><td>{escape(issue.supplier_order_id or '')}</td>"
                    f"<td>{escape(issue.reference)}</td><td>{escape(issue.detail)}</td>"
                    f"<td>{'YES' if critical else 'No'}</td></tr>"
                )
            parts.append(
                '<table border="1" style="border-collapse: collapse;">'
                "<tr><th>Supplier order</th><th>Reference</th><th>Error</th><th>Critical</th></tr>"
                + "".join(rows)
                + "</table>"
            )
        if report.critical_mismatches:
            parts.append(
                '<p style="color: red; font-weight: bold;">'
                "Order mismatches detected. Check the logs immediately.</p>"
            )
        return "\n".join(parts)

    def _deliver(self, subject: str, html: str) -> None:
        if not self._notifier:
            self._log.debug("No notifier configured", subject=subject)
            return
        try:
            self._notifier.send(subject, html)
        except Exception as exc:
            self._log.error("Notification failed", subject=subject, error=exc)
