"""ballotbox CLI — command-line interface for a persisted election.

Usage:
    ballotbox --admin admin status
    ballotbox --as admin register-voter --address alice
    ballotbox --as admin start-proposals
    ballotbox --as alice add-proposal --description "Plant more trees"
    ballotbox --as admin end-proposals
    ballotbox --as admin start-voting
    ballotbox --as alice vote --proposal 1
    ballotbox --as admin end-voting
    ballotbox --as admin tally
    ballotbox winner
    ballotbox check-invariants

Every invocation restores the election from <data-dir>/events.jsonl and
appends whatever the command changes.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

from ballotbox.config import ElectionConfig
from ballotbox.errors import ElectionError
from ballotbox.service import ElectionService, ServiceResult


def _make_service(args: argparse.Namespace) -> ElectionService:
    """Create an ElectionService over the persisted event log."""
    config = ElectionConfig.from_env(args.env_file)
    overrides = {}
    if args.data_dir is not None:
        overrides["data_dir"] = args.data_dir
    if args.caller is not None:
        overrides["caller"] = args.caller
    if args.admin is not None:
        overrides["administrator"] = args.admin
    config = dataclasses.replace(config, **overrides)

    logging.basicConfig(level=config.logging_level, format="%(levelname)s %(name)s: %(message)s")
    return ElectionService.from_config(config)


def _emit(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2))
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_register_voter(args: argparse.Namespace) -> int:
    return _emit(_make_service(args).register_voter(args.address))


def cmd_add_proposal(args: argparse.Namespace) -> int:
    return _emit(_make_service(args).add_proposal(args.description))


def cmd_vote(args: argparse.Namespace) -> int:
    return _emit(_make_service(args).set_vote(args.proposal))


def cmd_start_proposals(args: argparse.Namespace) -> int:
    return _emit(_make_service(args).start_proposals_registering())


def cmd_end_proposals(args: argparse.Namespace) -> int:
    return _emit(_make_service(args).end_proposals_registering())


def cmd_start_voting(args: argparse.Namespace) -> int:
    return _emit(_make_service(args).start_voting_session())


def cmd_end_voting(args: argparse.Namespace) -> int:
    return _emit(_make_service(args).end_voting_session())


def cmd_tally(args: argparse.Namespace) -> int:
    return _emit(_make_service(args).tally_votes())


def cmd_get_voter(args: argparse.Namespace) -> int:
    return _emit(_make_service(args).get_voter(args.address))


def cmd_get_proposal(args: argparse.Namespace) -> int:
    return _emit(_make_service(args).get_proposal(args.id))


def cmd_winner(args: argparse.Namespace) -> int:
    return _emit(_make_service(args).get_winner())


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Audit the persisted election against its event log."""
    errors = _make_service(args).check_invariants()
    if errors:
        for error in errors:
            print(f"FAIL: {error}", file=sys.stderr)
        return 1
    print("All election invariants hold.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ballotbox",
        description="ballotbox — single-election voting workflow CLI",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding events.jsonl (default: $BALLOTBOX_DATA_DIR or data/)",
    )
    parser.add_argument(
        "--as", dest="caller", default=None,
        help="Identity of the acting caller (default: $BALLOTBOX_CALLER)",
    )
    parser.add_argument(
        "--admin", default=None,
        help="Administrator identity for a new election (default: $BALLOTBOX_ADMIN)",
    )
    parser.add_argument(
        "--env-file", type=Path, default=None,
        help="Path to a .env file (default: search from the working directory)",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Show election status")

    p_reg = sub.add_parser("register-voter", help="Register a voter (administrator)")
    p_reg.add_argument("--address", required=True, help="Voter identity")

    p_prop = sub.add_parser("add-proposal", help="Submit a proposal (voter)")
    p_prop.add_argument("--description", required=True, help="Proposal text")

    p_vote = sub.add_parser("vote", help="Vote for a proposal (voter)")
    p_vote.add_argument("--proposal", type=int, required=True, help="Proposal ID")

    sub.add_parser("start-proposals", help="Open proposal registration (administrator)")
    sub.add_parser("end-proposals", help="Close proposal registration (administrator)")
    sub.add_parser("start-voting", help="Open the voting session (administrator)")
    sub.add_parser("end-voting", help="Close the voting session (administrator)")
    sub.add_parser("tally", help="Tally votes and record the winner (administrator)")

    p_voter = sub.add_parser("get-voter", help="Look up a voter (voter)")
    p_voter.add_argument("--address", required=True, help="Voter identity")

    p_get = sub.add_parser("get-proposal", help="Look up a proposal (voter)")
    p_get.add_argument("--id", type=int, required=True, help="Proposal ID")

    sub.add_parser("winner", help="Show the winning proposal ID")
    sub.add_parser("check-invariants", help="Audit the election against its event log")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "register-voter": cmd_register_voter,
        "add-proposal": cmd_add_proposal,
        "vote": cmd_vote,
        "start-proposals": cmd_start_proposals,
        "end-proposals": cmd_end_proposals,
        "start-voting": cmd_start_voting,
        "end-voting": cmd_end_voting,
        "tally": cmd_tally,
        "get-voter": cmd_get_voter,
        "get-proposal": cmd_get_proposal,
        "winner": cmd_winner,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except (ElectionError, ValueError) as exc:
        # Startup failures: missing administrator, corrupt or mismatched log.
        print(f"Failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
