"""
Command-line front end for the QuickFix client.

Usage:
    quickfix plans
    quickfix --email me@example.com --password ... status
    quickfix --email me@example.com --password ... select advanced
    quickfix --email me@example.com --password ... confirm advanced UTR123456 --reference 482913
    quickfix notifications
    quickfix ticket QF-1A2B3C
    quickfix guides --category smartphones
    quickfix guide fix-a-flickering-phone-screen

The password may also come from QUICKFIX_PASSWORD. Notices are written to
stderr; command output goes to stdout.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from quickfix import __version__
from quickfix.app import QuickFixApp
from quickfix.core.config import settings, validate_config
from quickfix.core.errors import ConfigurationError
from quickfix.core.formatting import format_amount, format_currency, format_date, humanize_status, truncate
from quickfix.core.logging import configure_logging
from quickfix.core.notices import Notice
from quickfix.features.premium.screenshot import ScreenshotFile

logger = logging.getLogger("quickfix.cli")


def _print_notice(notice: Notice) -> None:
    print(f"[{notice.level.value}] {notice.message}", file=sys.stderr)


async def _sign_in(app: QuickFixApp, args: argparse.Namespace) -> bool:
    if app.auth.user is not None:
        return True
    password = args.password or os.getenv("QUICKFIX_PASSWORD")
    if not args.email or not password:
        print("This command needs --email and --password (or QUICKFIX_PASSWORD).", file=sys.stderr)
        return False
    result = await app.auth.login(args.email, password)
    return result.ok


async def cmd_plans(app: QuickFixApp, args: argparse.Namespace) -> int:
    flow = app.subscription_flow()
    await flow.load()
    if flow.plans_error:
        print(flow.plans_error, file=sys.stderr)
        return 1
    for card in flow.cards:
        plan = card.plan
        print(f"{plan.name:<10} {plan.display_name:<20} {format_currency(plan.price, plan.currency):>12}  [{card.label}]")
        for benefit in plan.benefits:
            print(f"    - {benefit}")
    return 0


async def cmd_status(app: QuickFixApp, args: argparse.Namespace) -> int:
    if not await _sign_in(app, args):
        return 1
    flow = app.subscription_flow()
    result = await flow.load()
    if not result.ok:
        print(flow.status_error or result.message, file=sys.stderr)
        return 1
    sub = flow.subscription
    print(f"Status:         {humanize_status(sub.status.value if sub else None)}")
    if sub and sub.plan:
        print(f"Plan:           {sub.plan}")
        print(f"Reference code: {sub.reference_code or '-'}")
        print(f"Transaction id: {sub.transaction_id or '-'}")
        if sub.end_date:
            print(f"Valid until:    {format_date(sub.end_date)}")
        if sub.screenshot_url:
            print(f"Screenshot:     {sub.screenshot_url}")
    return 0


async def cmd_select(app: QuickFixApp, args: argparse.Namespace) -> int:
    if not await _sign_in(app, args):
        return 1
    flow = app.subscription_flow()
    await flow.load()
    result = flow.select_plan(args.plan)
    if not result.ok:
        print(result.message, file=sys.stderr)
        return 1
    if not flow.upi_link:
        print("UPI payments are not available right now.", file=sys.stderr)
        return 1
    print(f"Plan:           {flow.selected_plan.display_name} ({format_amount(flow.amount)} {flow.selected_plan.currency})")
    print(f"Reference code: {flow.reference_code}")
    print(f"Pay to:         {flow.upi_id}")
    print(f"UPI link:       {flow.upi_link}")
    print("Put the reference code in the payment note, then run `quickfix confirm` with your UTR.")
    return 0


async def cmd_confirm(app: QuickFixApp, args: argparse.Namespace) -> int:
    if not await _sign_in(app, args):
        return 1
    flow = app.subscription_flow()
    await flow.load()
    selected = flow.select_plan(args.plan)
    if not selected.ok:
        print(selected.message, file=sys.stderr)
        return 1
    screenshot = None
    if args.screenshot:
        try:
            screenshot = ScreenshotFile.from_path(args.screenshot)
        except OSError as exc:
            print(f"Could not read screenshot {args.screenshot}: {exc.strerror or exc}", file=sys.stderr)
            return 1
    if args.reference:
        adopted = flow.use_reference_code(args.reference)
        if not adopted.ok:
            print(adopted.message, file=sys.stderr)
            return 1
    flow.set_transaction_id(args.transaction_id)
    result = await flow.submit_confirmation()
    if not result.ok:
        if flow.transaction_id_error:
            print(flow.transaction_id_error, file=sys.stderr)
        return 1
    print(f"Status: {humanize_status(result.value.status.value)}")
    if screenshot is not None:
        flow.choose_screenshot(screenshot)
        uploaded = await flow.upload_screenshot()
        if not uploaded.ok:
            print(flow.screenshot_error, file=sys.stderr)
            return 1
    return 0


async def cmd_notifications(app: QuickFixApp, args: argparse.Namespace) -> int:
    if args.email:
        if not await _sign_in(app, args):
            return 1
        await app.notifications.fetch_notifications()
    items = app.notifications.feed()
    if not items:
        print("No notifications.")
        return 0
    for item in items:
        marker = " " if item.read else "*"
        print(f"{marker} {format_date(item.created_at)}  {item.title}: {truncate(item.message, 120)}")
        if item.action_label:
            print(f"      {item.action_label}: {item.link}")
    return 0


async def cmd_ticket(app: QuickFixApp, args: argparse.Namespace) -> int:
    result = await app.contact.check_ticket(args.ticket_number)
    if not result.ok:
        print(result.message, file=sys.stderr)
        return 1
    ticket = result.value
    print(f"Ticket #{ticket.ticket_number}: {ticket.status.value}")
    print(f"Opened:   {format_date(ticket.created_at)}")
    if ticket.admin_response:
        print(f"Response: {ticket.admin_response}")
    return 0


async def cmd_guides(app: QuickFixApp, args: argparse.Namespace) -> int:
    result = await app.guides.list_guides(keyword=args.keyword, category=args.category, page=args.page)
    if not result.ok:
        return 1
    page = result.value
    if not page.guides:
        print("No guides found.")
        return 0
    for guide in page.guides:
        badge = " [premium]" if guide.is_premium else ""
        category = guide.category.name if guide.category else "-"
        print(f"{guide.slug}{badge}  ({category}, {guide.average_rating:.1f}/5)  {truncate(guide.description, 80)}")
    print(f"Page {page.page} of {page.pages}, {page.total} guides")
    return 0


async def cmd_guide(app: QuickFixApp, args: argparse.Namespace) -> int:
    if args.email and not await _sign_in(app, args):
        return 1
    result = await app.guides.get_guide(args.slug)
    if not result.ok:
        return 1
    guide = result.value
    print(guide.title)
    print(f"Rated {guide.average_rating:.1f}/5 by {guide.num_of_reviews}")
    print()
    print(guide.content or guide.description)
    return 0


COMMANDS = {
    "plans": cmd_plans,
    "status": cmd_status,
    "select": cmd_select,
    "confirm": cmd_confirm,
    "notifications": cmd_notifications,
    "ticket": cmd_ticket,
    "guides": cmd_guides,
    "guide": cmd_guide,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quickfix", description="QuickFix account and premium client")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--base-url", default=None, help="API base URL (default: QUICKFIX_API_BASE_URL)")
    parser.add_argument("--email", default=None)
    parser.add_argument("--password", default=None)
    parser.add_argument("--log-level", default=None)

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("plans", help="List premium plans")
    sub.add_parser("status", help="Show your subscription status")

    select = sub.add_parser("select", help="Pick a plan and get a UPI payment link")
    select.add_argument("plan")

    confirm = sub.add_parser("confirm", help="Submit your UPI transaction id for verification")
    confirm.add_argument("plan")
    confirm.add_argument("transaction_id")
    confirm.add_argument("--reference", default=None, help="Reference code used in the payment note")
    confirm.add_argument("--screenshot", default=None, help="Payment screenshot to attach")

    sub.add_parser("notifications", help="Show notifications and announcements")

    ticket = sub.add_parser("ticket", help="Check a support ticket")
    ticket.add_argument("ticket_number")

    guides = sub.add_parser("guides", help="Browse repair guides")
    guides.add_argument("--keyword", default=None)
    guides.add_argument("--category", default=None, help="Category slug")
    guides.add_argument("--page", type=int, default=1)

    guide = sub.add_parser("guide", help="Read one guide")
    guide.add_argument("slug")
    return parser


async def run(args: argparse.Namespace) -> int:
    async with QuickFixApp(args.base_url) as app:
        app.notices.subscribe(_print_notice)
        await app.start()
        return await COMMANDS[args.command](app, args)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.ENV, args.log_level or settings.LOG_LEVEL)
    validate_config(strict=settings.CONFIG_STRICT)
    try:
        return asyncio.run(run(args))
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
