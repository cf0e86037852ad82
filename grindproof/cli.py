"""
Tool: GrindProof CLI
Purpose: Local administration - database, sessions, analysis, API server

Usage:
    grindproof --action init-db
    grindproof --action create-session --user alice --ttl 48
    grindproof --action revoke --token <token>
    grindproof --action revoke-all --user alice
    grindproof --action cleanup
    grindproof --action analyze --user alice
    grindproof --action serve --host 127.0.0.1 --port 8080
"""

import argparse
import json
import sys

from grindproof import DB_PATH
from grindproof.analysis.data_analyzer import analyze_user_data
from grindproof.database import get_connection
from grindproof.errors import GrindProofError
from grindproof.logging_config import setup_logging
from grindproof.security.session import (
    DEFAULT_TTL_HOURS,
    cleanup_expired,
    create_session,
    revoke_all_sessions,
    revoke_session,
)


ACTIONS = ["init-db", "create-session", "revoke", "revoke-all", "cleanup", "analyze", "serve"]
USER_ACTIONS = ("create-session", "revoke-all", "analyze")


def run_action(args: argparse.Namespace) -> dict:
    """Run one non-server action against the database and return its result."""
    conn = get_connection(args.db)
    try:
        if args.action == "init-db":
            return {"success": True, "message": f"Database ready at {args.db or DB_PATH}"}
        if args.action == "create-session":
            return create_session(conn, args.user, ttl_hours=args.ttl)
        if args.action == "revoke":
            return revoke_session(conn, args.token)
        if args.action == "revoke-all":
            return revoke_all_sessions(conn, args.user)
        if args.action == "cleanup":
            removed = cleanup_expired(conn)
            return {"success": True, "removed": removed, "message": f"Removed {removed} sessions"}
        if args.action == "analyze":
            analysis = analyze_user_data(conn, args.user)
            return {"success": True, "analysis": analysis.to_dict()}
        return {"success": False, "error": f"Unknown action: {args.action}"}
    except GrindProofError as e:
        return {"success": False, "error": e.message}
    finally:
        conn.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="GrindProof administration")
    parser.add_argument("--action", required=True, choices=ACTIONS, help="Action to perform")
    parser.add_argument("--user", help="User ID")
    parser.add_argument("--token", help="Session token")
    parser.add_argument(
        "--ttl",
        type=int,
        default=DEFAULT_TTL_HOURS,
        help=f"Session TTL in hours (default: {DEFAULT_TTL_HOURS})",
    )
    parser.add_argument("--db", help="Database path (default: GRINDPROOF_DB_PATH or data/grindproof.db)")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)

    args = parser.parse_args(argv)
    setup_logging()

    if args.action in USER_ACTIONS and not args.user:
        print(f"Error: --user required for {args.action}")
        sys.exit(1)
    if args.action == "revoke" and not args.token:
        print("Error: --token required for revoke")
        sys.exit(1)

    if args.action == "serve":
        import uvicorn

        uvicorn.run("grindproof.api.main:app", host=args.host, port=args.port)
        return

    result = run_action(args)
    if result.get("success"):
        print(f"OK {result.get('message', 'Success')}")
    else:
        print(f"ERROR {result.get('error')}")
        sys.exit(1)

    # Don't print token in normal JSON output
    output = result.copy()
    if "token" in output:
        print(f"\n** SESSION TOKEN (save this!) **\n{output['token']}\n")
        output["token"] = "***CREATED***"

    print(json.dumps(output, indent=2, default=str))


if __name__ == "__main__":
    main()
