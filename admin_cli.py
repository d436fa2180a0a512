#!/usr/bin/env python3
"""
Admin CLI utility for the DarkFrame backend.

Usage:
    python admin_cli.py run-job factory-slots
    python admin_cli.py run-job flag-bot
    python admin_cli.py grant-admin --username alice [--revoke]
    python admin_cli.py issue-token --username alice [--minutes 60]
"""

import asyncio
import argparse
import sys
from datetime import timedelta

from core.database import init_db
from core.security import create_access_token
from jobs.registry import build_jobs

JOB_KEYS = ("factory-slots", "flag-bot")


async def run_job_command(args):
    """Run a single tick of one background job and print its stats."""
    jobs = build_jobs()
    job, store = jobs[args.job]

    await job.on_start(store)
    updated = await job.run_cycle(store)
    stats = job.get_stats()

    print(f"✅ {job.name}: {updated} entities updated")
    print(f"   Units changed: {stats.total_units_changed}")
    print(f"   Resets: {stats.reset_count}")
    print(f"   Errors: {stats.error_count}")
    print(f"   Took: {stats.average_execution_time_ms:.0f}ms")
    return stats.error_count == 0


async def grant_admin_command(args):
    """Grant or revoke admin rights for a player."""
    from data.models import Player

    player = await Player.find_one(Player.username == args.username)
    if not player:
        print(f"❌ Player '{args.username}' not found!")
        return False
    if player.is_bot:
        print(f"❌ '{args.username}' is a bot!")
        return False

    player.is_admin = not args.revoke
    await player.save()
    print(f"✅ '{player.username}' admin: {'Yes' if player.is_admin else 'No'}")
    return True


async def issue_token_command(args):
    """Print an access token for an existing player."""
    from data.models import Player

    player = await Player.find_one(Player.username == args.username)
    if not player or player.is_bot:
        print(f"❌ Player '{args.username}' not found!")
        return False

    token = create_access_token(
        data={"sub": player.username},
        expires_delta=timedelta(minutes=args.minutes) if args.minutes else None,
    )
    print(token)
    return True


def main():
    parser = argparse.ArgumentParser(description="DarkFrame Admin CLI")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Run job command
    job_parser = subparsers.add_parser('run-job', help='Run one tick of a background job')
    job_parser.add_argument('job', choices=JOB_KEYS, help='Job to run')

    # Grant admin command
    admin_parser = subparsers.add_parser('grant-admin', help='Grant admin rights to a player')
    admin_parser.add_argument('--username', required=True, help='Player username')
    admin_parser.add_argument('--revoke', action='store_true', help='Revoke instead of grant')

    # Issue token command
    token_parser = subparsers.add_parser('issue-token', help='Issue an access token for a player')
    token_parser.add_argument('--username', required=True, help='Player username')
    token_parser.add_argument('--minutes', type=int, help='Token lifetime (defaults to settings)')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    async def run_command():
        # Initialize database connection
        print("🔄 Connecting to database...", file=sys.stderr)
        await init_db()
        print("✅ Database connected!", file=sys.stderr)

        if args.command == 'run-job':
            success = await run_job_command(args)
        elif args.command == 'grant-admin':
            success = await grant_admin_command(args)
        elif args.command == 'issue-token':
            success = await issue_token_command(args)
        else:
            print(f"❌ Unknown command: {args.command}")
            success = False

        if not success:
            sys.exit(1)

    # Run the async command
    asyncio.run(run_command())


if __name__ == "__main__":
    main()
