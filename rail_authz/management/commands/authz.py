"""
Management command for inspecting authorization decisions.
"""

from django.core.management.base import BaseCommand, CommandError

from rail_authz.exceptions import AuthorizationError
from rail_authz.identity import StaticIdentity
from rail_authz.service import get_authorization_service


class Command(BaseCommand):
    help = "Check permissions and guards for a set of roles, or clear the authorization cache."

    def add_arguments(self, parser):
        subparsers = parser.add_subparsers(dest="action", required=True)

        check_parser = subparsers.add_parser("check", help="Check a permission")
        check_parser.add_argument("permission", help="Permission to check")
        check_parser.add_argument(
            "--role",
            action="append",
            dest="roles",
            default=[],
            help="Role held by the identity (repeatable)",
        )

        guard_parser = subparsers.add_parser("guard", help="Evaluate the guards for an identifier")
        guard_parser.add_argument("identifier", help="Route or controller:action identifier")
        guard_parser.add_argument(
            "--role",
            action="append",
            dest="roles",
            default=[],
            help="Role held by the identity (repeatable)",
        )

        subparsers.add_parser("clear-cache", help="Invalidate cached role graphs and grants")

    def handle(self, *args, **options):
        action = options["action"]
        service = get_authorization_service()

        try:
            if action == "check":
                self._handle_check(service, options)
            elif action == "guard":
                self._handle_guard(service, options)
            elif action == "clear-cache":
                service.reload()
                self.stdout.write(self.style.SUCCESS("Authorization cache cleared"))
        except AuthorizationError as exc:
            raise CommandError(str(exc)) from exc

    def _handle_check(self, service, options):
        identity = StaticIdentity(options["roles"])
        explanation = service.explain(identity, options["permission"])
        message = (
            f"{options['permission']}: {'granted' if explanation.allowed else 'denied'} "
            f"({explanation.reason})"
        )
        if explanation.allowed:
            self.stdout.write(self.style.SUCCESS(message))
        else:
            self.stdout.write(self.style.WARNING(message))
        self.stdout.write(f"effective roles: {', '.join(sorted(explanation.effective_roles)) or '-'}")
        self.stdout.write(f"granting roles: {', '.join(sorted(explanation.granting_roles)) or '-'}")

    def _handle_guard(self, service, options):
        identity = StaticIdentity(options["roles"])
        verdict = service.check_guards(options["identifier"], identity)
        message = (
            f"{options['identifier']}: {'allowed' if verdict.allowed else 'denied'} "
            f"(guard={verdict.guard}, rule={verdict.rule_id or '-'}, reason={verdict.reason})"
        )
        if verdict.allowed:
            self.stdout.write(self.style.SUCCESS(message))
        else:
            self.stdout.write(self.style.WARNING(message))
