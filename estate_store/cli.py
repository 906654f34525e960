#!/usr/bin/env python3
"""
Estate Store - Command Line Interface

Usage:
    estate-store init-db
    estate-store seed
    estate-store repair-wave-balances
    estate-store clear-properties --yes
    estate-store wave-usage <user_id>
    estate-store analytics <user_id>
"""
import argparse
import json
import sys

from estate_store.core import settings, setup_logging, StorageError
from estate_store.storage import BACKENDS, create_storage, seed_demo_data


def print_json(data, indent=2):
    """Pretty print JSON data"""
    print(json.dumps(data, indent=indent, ensure_ascii=False, default=str))


def cmd_init_db(args, storage):
    """Create the database tables"""
    # Tables are created when the database store is built
    engine = getattr(storage, 'engine', None)
    if engine is None:
        print_json({'backend': 'memory', 'initialized': False})
        return
    print_json({
        'backend': 'database',
        'database': engine.url.render_as_string(hide_password=True),
        'initialized': True,
    })


def cmd_seed(args, storage):
    """Load the demo accounts, wave and listings"""
    print_json(seed_demo_data(storage))


def cmd_repair_wave_balances(args, storage):
    """Reset zero wave balances of customers to the default"""
    print_json({'updated': storage.update_users_with_zero_wave_balance()})


def cmd_clear_properties(args, storage):
    """Delete every property with its favorites, inquiries and search history"""
    if not args.yes:
        print("Refusing to delete all properties without --yes")
        sys.exit(1)
    print_json({'deleted': storage.clear_all_properties()})


def cmd_wave_usage(args, storage):
    """Show a user's wave usage and remaining balance"""
    user = storage.get_user(args.user_id)
    if user is None:
        print(f"Error: user not found: {args.user_id}")
        sys.exit(1)
    print_json({
        'user_id': args.user_id,
        'role': user['role'],
        'wave_balance': user['wave_balance'],
        'used': storage.get_user_wave_usage(args.user_id),
        'remaining': storage.get_user_remaining_waves(args.user_id),
    })


def cmd_analytics(args, storage):
    """Show a customer's points and activity analytics"""
    print_json({
        'points': storage.get_customer_points(args.user_id),
        'analytics': storage.get_customer_analytics(args.user_id),
    })


def main(argv=None):
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description='Estate Store maintenance commands',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create tables in the configured database
  estate-store init-db

  # Load demo data
  estate-store seed

  # Check an agent's wave quota
  estate-store wave-usage customer-001
        """
    )

    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--backend', choices=BACKENDS, help='Storage backend (overrides STORAGE_BACKEND)')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    subparsers.add_parser('init-db', help='Create database tables')
    subparsers.add_parser('seed', help='Load demo data')
    subparsers.add_parser('repair-wave-balances', help='Reset zero wave balances to the default')

    clear_parser = subparsers.add_parser('clear-properties', help='Delete all properties')
    clear_parser.add_argument('--yes', action='store_true', help='Confirm the deletion')

    usage_parser = subparsers.add_parser('wave-usage', help="Show a user's wave usage")
    usage_parser.add_argument('user_id', help='User ID')

    analytics_parser = subparsers.add_parser('analytics', help="Show a customer's analytics")
    analytics_parser.add_argument('user_id', help='User ID')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging(
        level='DEBUG' if args.debug else settings.LOG_LEVEL,
        log_file=settings.LOG_FILE
    )

    commands = {
        'init-db': cmd_init_db,
        'seed': cmd_seed,
        'repair-wave-balances': cmd_repair_wave_balances,
        'clear-properties': cmd_clear_properties,
        'wave-usage': cmd_wave_usage,
        'analytics': cmd_analytics,
    }

    try:
        storage = create_storage(args.backend, seed=False)
        commands[args.command](args, storage)
    except StorageError as e:
        print(f"Error: {e.message}")
        sys.exit(1)


if __name__ == '__main__':
    main()
