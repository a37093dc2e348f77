#!/usr/bin/env python3
"""gentrail CLI entrypoint."""

import sys
import argparse
import logging

from gentrail.lib.config import DEFAULT_CONFIG_FILE, load_config
from gentrail.lib.errors import ConfigError, GentrailError
from gentrail.orchestrator import Orchestrator

logger = logging.getLogger(__name__)


def get_orchestrator(args) -> Orchestrator:
    return Orchestrator(load_config(args.config))


def cmd_init(args):
    get_orchestrator(args).init()


def cmd_reset(args):
    get_orchestrator(args).full_reset()


def cmd_stats(args):
    get_orchestrator(args).stats()


def cmd_build(args):
    get_orchestrator(args).build()


def cmd_lint(args):
    get_orchestrator(args).lint()


def cmd_install(args):
    get_orchestrator(args).install()


def cmd_clean(args):
    get_orchestrator(args).clean()


def cmd_credentials(args):
    get_orchestrator(args).credentials()


def cmd_measure(args):
    get_orchestrator(args).measure()


def cmd_measure_prompt(args):
    get_orchestrator(args).measure_prompt()


def cmd_stitch(args):
    get_orchestrator(args).stitch()


def cmd_gen_start(args):
    get_orchestrator(args).generator_start()


def cmd_gen_run(args):
    get_orchestrator(args).generator_run(args.cycles)


def cmd_gen_resume(args):
    get_orchestrator(args).generator_resume()


def cmd_gen_stop(args):
    get_orchestrator(args).generator_stop()


def cmd_gen_list(args):
    get_orchestrator(args).generator_list()


def cmd_gen_switch(args):
    get_orchestrator(args).generator_switch(args.name)


def cmd_gen_reset(args):
    get_orchestrator(args).generator_reset(args.name, force=args.force)


def cmd_beads_init(args):
    get_orchestrator(args).beads_init()


def cmd_beads_reset(args):
    get_orchestrator(args).beads_reset()


def cmd_cobbler_reset(args):
    get_orchestrator(args).cobbler_reset()


def positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='gentrail', description='Generation trail orchestrator')
    parser.add_argument('--config', '-c', default=DEFAULT_CONFIG_FILE, help='Path to configuration YAML')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    simple = [
        ('init', 'Initialize the project (beads)', cmd_init),
        ('reset', 'Full reset: cobbler, generator, beads', cmd_reset),
        ('stats', 'Print lines of code and documentation word counts', cmd_stats),
        ('build', 'Build the project', cmd_build),
        ('lint', 'Run the linter', cmd_lint),
        ('install', 'Install the project', cmd_install),
        ('clean', 'Remove build artifacts', cmd_clean),
        ('credentials', 'Extract agent credentials from the macOS Keychain', cmd_credentials),
    ]
    for name, help_text, func in simple:
        p = subparsers.add_parser(name, help=help_text)
        p.set_defaults(func=func)

    # gentrail measure [prompt]
    p_measure = subparsers.add_parser('measure', help='Assess project state and propose tasks via the agent')
    p_measure.set_defaults(func=cmd_measure)
    measure_sub = p_measure.add_subparsers(dest='measure_cmd')
    p_prompt = measure_sub.add_parser('prompt', help='Print the measure prompt that would be sent')
    p_prompt.set_defaults(func=cmd_measure_prompt)

    # gentrail stitch
    p_stitch = subparsers.add_parser('stitch', help='Pick ready tasks and have the agent execute them')
    p_stitch.set_defaults(func=cmd_stitch)

    # gentrail generator ...
    p_gen = subparsers.add_parser('generator', aliases=['gen'], help='Generation trail lifecycle')
    gen_sub = p_gen.add_subparsers(dest='generator_cmd', required=True)

    p = gen_sub.add_parser('start', help='Begin a new generation trail')
    p.set_defaults(func=cmd_gen_start)

    p = gen_sub.add_parser('run', help='Execute N measure + stitch cycles in the current generation')
    p.add_argument('--cycles', '-n', type=positive_int, default=None,
                   help='Number of cycles (default: from configuration)')
    p.set_defaults(func=cmd_gen_run)

    p = gen_sub.add_parser('resume', help='Recover from an interrupted run and continue')
    p.set_defaults(func=cmd_gen_resume)

    p = gen_sub.add_parser('stop', help='Complete the current generation and merge it into main')
    p.set_defaults(func=cmd_gen_stop)

    p = gen_sub.add_parser('list', help='Show generations and their state')
    p.set_defaults(func=cmd_gen_list)

    p = gen_sub.add_parser('switch', help='Commit current work and switch to another generation')
    p.add_argument('name', help='Generation name')
    p.set_defaults(func=cmd_gen_switch)

    p = gen_sub.add_parser('reset', help='Destroy generation branches, worktrees and generated sources')
    p.add_argument('name', nargs='?', help='Only this generation (default: all)')
    p.add_argument('--force', action='store_true', help='Also destroy merged generations')
    p.set_defaults(func=cmd_gen_reset)

    # gentrail beads ...
    p_beads = subparsers.add_parser('beads', help='Issue tracker lifecycle')
    beads_sub = p_beads.add_subparsers(dest='beads_cmd', required=True)
    p = beads_sub.add_parser('init', help='Initialize the beads issue tracker')
    p.set_defaults(func=cmd_beads_init)
    p = beads_sub.add_parser('reset', help='Clear beads issue history')
    p.set_defaults(func=cmd_beads_reset)

    # gentrail cobbler ...
    p_cobbler = subparsers.add_parser('cobbler', help='Scratch directory commands')
    cobbler_sub = p_cobbler.add_subparsers(dest='cobbler_cmd', required=True)
    p = cobbler_sub.add_parser('reset', help='Remove the cobbler scratch directory')
    p.set_defaults(func=cmd_cobbler_reset)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        args.func(args)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except GentrailError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
    return 0


if __name__ == '__main__':
    sys.exit(main())
