"""Assign a subscription plan to a user from the command line."""
from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from billing.plans import UnknownPlan
from billing.services.subscription_lifecycle import SubscriptionLifecycleError, change_user_plan


class Command(BaseCommand):
    help = "Move a user onto the free, pro or business plan."

    def add_arguments(self, parser) -> None:
        parser.add_argument("user_id", type=int, help="Primary key of the user to update.")
        parser.add_argument("plan", help="Target plan: free, pro or business.")
        parser.add_argument(
            "--status",
            default=None,
            help="Optional subscription status (active, cancelled, past_due, trialing).",
        )

    def handle(self, *args, **options) -> None:
        try:
            result = change_user_plan(
                options["user_id"],
                options["plan"],
                status=options["status"],
                actor="management_command",
            )
        except (UnknownPlan, SubscriptionLifecycleError) as exc:
            raise CommandError(str(exc)) from exc

        if result.changed:
            self.stdout.write(
                self.style.SUCCESS(f"User {result.user_id}: {result.previous_plan} -> {result.plan}")
            )
        else:
            self.stdout.write(self.style.WARNING(f"User {result.user_id} already on {result.plan}; nothing to do."))
