#!/usr/bin/env python3
import argparse
import logging
import sys

import requests

from boxgen import __app_name__, __version__
from boxgen.core import init_context
from boxgen.core.config import CLI_LOG_FILE, KERNEL_CONFIG_FILE_PATH
from boxgen.core.logging_utils import setup_logging as setup_core_logging
from boxgen.db.profiles import new_profile
from boxgen.kernel.generator import build_config
from boxgen.kernel.rules import EDITABLE_RULESETS, add_to_ruleset
from boxgen.sub.updater import SubscriptionUpdater

logger = logging.getLogger("boxgen.cli")


def cmd_list(args: argparse.Namespace) -> int:
    """Show the list of profiles."""
    context = init_context()

    profiles = context.profiles.profiles
    if not profiles:
        print("No profiles")
        return 0

    for i, profile in enumerate(profiles, 1):
        general = profile.general_config
        print(f"  {i}. [ID: {profile.id}] {profile.name}")
        print(
            f"      mode: {general.mode} | mixed-port: {general.mixed_port} | "
            f"groups: {len(profile.proxy_groups_config)} | rules: {len(profile.rules_config)}"
        )
    return 0


def cmd_new(args: argparse.Namespace) -> int:
    """Create a profile with default settings."""
    context = init_context()

    profile = new_profile(args.name)
    try:
        context.profiles.add(profile)
    except OSError as e:
        print(f"[ERROR] Could not save profile: {e}")
        return 1

    print(f"[OK] Profile created: {profile.name} (ID: {profile.id})")
    return 0


def cmd_remove(args: argparse.Namespace) -> int:
    """Remove profile."""
    context = init_context()

    profile = context.profiles.get(args.profile_id)
    if not profile:
        print(f"[ERROR] Profile with ID {args.profile_id} not found")
        return 1

    try:
        context.profiles.delete(args.profile_id)
    except OSError as e:
        print(f"[ERROR] Could not save profiles: {e}")
        return 1

    print(f"[OK] Profile removed: {profile.name} (ID: {args.profile_id})")
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    """Generate kernel configuration for a profile."""
    context = init_context()

    profile = context.profiles.get(args.profile_id)
    if not profile:
        print(f"[ERROR] Profile with ID {args.profile_id} not found")
        return 1

    if args.stdout:
        config = build_config(profile, context.generation_context())
        print(config.to_json())
        return 0

    path = args.output or KERNEL_CONFIG_FILE_PATH
    try:
        context.generate_config_file(profile.id, path)
    except OSError as e:
        print(f"[ERROR] Could not write configuration: {e}")
        return 1

    print(f"[OK] Configuration saved to: {context.blob_store.resolve(path)}")
    return 0


def cmd_subscriptions(args: argparse.Namespace) -> int:
    """Show the list of subscriptions."""
    context = init_context()

    subs = context.subscriptions.entries
    if not subs:
        print("No subscriptions")
        return 0

    for sub in subs:
        state = "disabled" if sub.disabled else (sub.update_time or "never updated")
        print(f"  [ID: {sub.id}] {sub.name} ({state})")
        print(f"      {sub.path}")
    return 0


def cmd_subscription_update(args: argparse.Namespace) -> int:
    """Download a subscription and store its proxies."""
    context = init_context()

    updater = SubscriptionUpdater(context.subscriptions, context.blob_store)
    try:
        proxies = updater.update(args.sub_id)
    except KeyError:
        print(f"[ERROR] Subscription with ID {args.sub_id} not found")
        return 1
    except (requests.RequestException, ValueError, OSError) as e:
        print(f"[ERROR] Update failed: {e}")
        logger.exception("Subscription update failed")
        return 1

    print(f"[OK] Subscription updated: {len(proxies)} proxies")
    return 0


def cmd_rulesets(args: argparse.Namespace) -> int:
    """Show the list of rulesets."""
    context = init_context()

    rulesets = context.rulesets.entries
    if not rulesets:
        print("No rulesets")
        return 0

    for ruleset in rulesets:
        print(f"  [ID: {ruleset.id}] {ruleset.tag} ({ruleset.format})")
        print(f"      {ruleset.path}")
    return 0


def cmd_rule_add(args: argparse.Namespace) -> int:
    """Prepend an entry to the direct, reject or proxy ruleset."""
    context = init_context()

    try:
        payload = add_to_ruleset(context.blob_store, args.ruleset, args.payload)
    except OSError as e:
        print(f"[ERROR] Could not update ruleset: {e}")
        return 1

    print(f"[OK] {args.payload} added to {args.ruleset} ({len(payload)} entries)")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    print(f"{__app_name__} {__version__}")
    return 0


def main() -> int:
    """Main entry point."""
    setup_core_logging(CLI_LOG_FILE, level=logging.INFO)
    logger.info("Starting boxgen CLI, log file: %s", CLI_LOG_FILE)

    parser = argparse.ArgumentParser(
        description='boxgen - sing-box profile manager',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='Examples:\n'
               '  %(prog)s new "Home"\n'
               '  %(prog)s ls\n'
               '  %(prog)s gen <profile-id>\n'
               '  %(prog)s sub-update <subscription-id>\n'
               '  %(prog)s rule-add direct example.com',
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    subparsers.add_parser('ls', help='Show profiles')

    new_parser = subparsers.add_parser('new', help='Create profile')
    new_parser.add_argument('name', help='Profile name')

    remove_parser = subparsers.add_parser('rm', help='Remove profile')
    remove_parser.add_argument('profile_id', help='Profile ID')

    gen_parser = subparsers.add_parser('gen', help='Generate kernel configuration')
    gen_parser.add_argument('profile_id', help='Profile ID')
    gen_parser.add_argument('-o', '--output', help='Path relative to the application root')
    gen_parser.add_argument('--stdout', action='store_true', help='Print instead of writing')

    subparsers.add_parser('subs', help='Show subscriptions')

    sub_update_parser = subparsers.add_parser('sub-update', help='Update subscription')
    sub_update_parser.add_argument('sub_id', help='Subscription ID')

    subparsers.add_parser('rulesets', help='Show rulesets')

    rule_add_parser = subparsers.add_parser('rule-add', help='Add entry to a ruleset')
    rule_add_parser.add_argument('ruleset', choices=EDITABLE_RULESETS, help='Ruleset')
    rule_add_parser.add_argument('payload', help='Entry to add')

    subparsers.add_parser('ver', help='Show version')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        'ls': cmd_list,
        'new': cmd_new,
        'rm': cmd_remove,
        'gen': cmd_generate,
        'subs': cmd_subscriptions,
        'sub-update': cmd_subscription_update,
        'rulesets': cmd_rulesets,
        'rule-add': cmd_rule_add,
        'ver': cmd_version,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
