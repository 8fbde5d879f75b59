#!/usr/bin/env python3

import argparse
import logging
import sys

from dotenv import load_dotenv

from prd_planning.config import load_settings
from prd_planning.estimates import summarize_estimates
from prd_planning.export import export_sprint_plan
from prd_planning.graph import build_dependency_graph
from prd_planning.models import CapacityMode, PlanningInputError
from prd_planning.scheduler import find_precedence_violations, plan_sprints, select_next_story
from prd_planning.snapshot import dump_json, load_candidate, load_snapshot
from prd_planning.validation import validate_sprint_plan


def _number(raw):
    try:
        value = float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f'{raw!r} is not a number')
    return int(value) if value.is_integer() else value


def parse_args(argv=None):
    """Parse CLI arguments; capacity flags override PLANNER_* environment variables."""
    parser = argparse.ArgumentParser(description='PRD dependency graph and sprint planner')
    subparsers = parser.add_subparsers(dest='command', required=True)

    commands = {
        'graph': 'Build the dependency graph with warnings',
        'validate': 'Check pending/in-progress stories for blocked or circular dependencies',
        'plan': 'Pack pending, estimated stories into capacity-bounded sprints',
        'next': 'Show the next story that is ready to work on',
        'estimates': 'Summarize story point estimates',
    }
    parsers = {}
    for name, help_text in commands.items():
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('snapshot', help='JSON file with {"prdId": ..., "stories": [...]}')
        parsers[name] = sub

    plan = parsers['plan']
    plan.add_argument('--capacity', type=_number, help='Sprint capacity (overrides PLANNER_CAPACITY env)')
    plan.add_argument('--capacity-mode', choices=[m.value for m in CapacityMode],
                      help='Measure capacity by story count or story points (overrides PLANNER_CAPACITY_MODE env)')
    plan.add_argument('--candidate', help='JSON file with a candidate sprint plan to repair')
    plan.add_argument('--xlsx', help='Also write the plan to this Excel file')
    plan.add_argument('--check-precedence', action='store_true',
                      help='Report stories scheduled before an incomplete blocker')
    return parser.parse_args(argv)


def run_command(args, settings):
    """Return ``(payload, exit_code)`` for the parsed command."""
    snapshot = load_snapshot(args.snapshot)
    print(f'📋 Loaded {len(snapshot.stories)} stories from {args.snapshot}', file=sys.stderr)

    if args.command == 'graph':
        return build_dependency_graph(snapshot.stories, snapshot.prd_id), 0

    if args.command == 'validate':
        validation = validate_sprint_plan(snapshot.stories)
        return validation, 0 if validation.valid else 1

    if args.command == 'next':
        story = select_next_story(snapshot.stories)
        if story is None:
            print('⏸️ No pending story is ready', file=sys.stderr)
        return (story.to_dict() if story else None), 0

    if args.command == 'estimates':
        return summarize_estimates(snapshot.stories), 0

    capacity = args.capacity if args.capacity is not None else settings.capacity
    capacity_mode = args.capacity_mode or settings.capacity_mode
    candidate = load_candidate(args.candidate) if args.candidate else snapshot.candidate
    assignment = plan_sprints(snapshot.stories, capacity, capacity_mode, candidate=candidate, prd_id=snapshot.prd_id)
    print(f'✅ {assignment.summary}', file=sys.stderr)

    if args.xlsx:
        with open(args.xlsx, 'wb') as f:
            f.write(export_sprint_plan(assignment))
        print(f'📊 Exported sprint plan to {args.xlsx}', file=sys.stderr)

    if not args.check_precedence:
        return assignment, 0
    violations = find_precedence_violations(assignment, snapshot.stories)
    for violation in violations:
        print(f'⚠️ {violation.message}', file=sys.stderr)
    payload = {
        'plan': assignment.to_dict(),
        'precedenceViolations': [v.to_dict() for v in violations],
    }
    return payload, 1 if violations else 0


def main(argv=None) -> int:
    load_dotenv()
    args = parse_args(argv)

    try:
        settings = load_settings()
    except PlanningInputError as e:
        print(f'❌ Configuration error: {e}', file=sys.stderr)
        return 2
    logging.basicConfig(level=settings.log_level, format='%(levelname)s %(name)s: %(message)s')

    try:
        payload, exit_code = run_command(args, settings)
    except PlanningInputError as e:
        print(f'❌ {e}', file=sys.stderr)
        return 2

    print(dump_json(payload))
    return exit_code


if __name__ == '__main__':
    sys.exit(main())
