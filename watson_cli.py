import argparse
import sys

from colorama import init, Fore, Style

from convo_export import CONVO_WRITERS, DEFAULT_OUTPUT_DIR, compile_workspace
from run_all_simulations import run_all_simulations
from watson_logs import export_logs
from workspace_errors import WorkspaceConvoError
from workspace_intents import SOURCES, export_workspace_intents

init()


def build_parser():
    parser = argparse.ArgumentParser(
        prog='watson-convo',
        description="Convert assistant workspace and log exports into test conversations.")
    subparsers = parser.add_subparsers(dest='command', required=True)

    convos = subparsers.add_parser('convos', help="Enumerate every conversation path of a workspace's dialog tree.")
    convos.add_argument("json_file", help="Workspace export (JSON) to read.")
    convos.add_argument("-o", "--output", default=DEFAULT_OUTPUT_DIR, help="Output directory.")
    convos.add_argument("--format", choices=sorted(CONVO_WRITERS), default='json', help="Conversation file format.")
    convos.add_argument("--coverage-xlsx", help="Also write the node coverage report to this workbook.")
    convos.add_argument("--verbose", action='store_true', help="Print every traversal step.")

    intents = subparsers.add_parser('intents', help="Write utterance lists (and assertion convos) for intents/entities.")
    intents.add_argument("json_file", help="Workspace export (JSON) to read.")
    intents.add_argument("-o", "--output", default=DEFAULT_OUTPUT_DIR, help="Output directory.")
    intents.add_argument("--source", choices=SOURCES, default='intents', help="What to import.")
    intents.add_argument("--no-buildconvos", dest='buildconvos', action='store_false',
                         help="Only write utterance files, no assertion convos.")
    intents.add_argument("--format", choices=sorted(CONVO_WRITERS), default='json', help="Conversation file format.")

    logs = subparsers.add_parser('logs', help="Convert a conversation log export.")
    logs.add_argument("json_file", help="Log export (JSON) to read.")
    logs.add_argument("-o", "--output", default=DEFAULT_OUTPUT_DIR, help="Output directory.")
    logs.add_argument("--format", dest='log_format', choices=['convo', 'intent'], default='convo',
                      help='"convo" for full conversations, "intent" for the intent list only.')
    logs.add_argument("--name", help="Base name of the workbook (default: input file name).")
    logs.add_argument("--convo-format", choices=sorted(CONVO_WRITERS), default='json',
                      help="Conversation file format for the convo export.")

    batch = subparsers.add_parser('batch', help="Enumerate conversations for every workspace export in a directory.")
    batch.add_argument("input_dir", help="Directory searched for *.json workspace exports.")
    batch.add_argument("-o", "--output", default=DEFAULT_OUTPUT_DIR, help="Output directory.")
    batch.add_argument("--format", choices=sorted(CONVO_WRITERS), default='json', help="Conversation file format.")
    batch.add_argument("--verbose", action='store_true', help="Print every traversal step.")
    return parser


def run(args):
    """Dispatch a parsed command line; returns the process exit status"""
    if args.command == 'convos':
        summary = compile_workspace(args.json_file, args.output, args.format,
                                    coverage_xlsx=args.coverage_xlsx, verbose=args.verbose)
        return 0 if not summary['failed'] else 1
    if args.command == 'intents':
        _, failed = export_workspace_intents(args.json_file, args.output, args.source, args.buildconvos, args.format)
        return 0 if not failed else 1
    if args.command == 'logs':
        result = export_logs(args.json_file, args.output, args.log_format, args.name, args.convo_format)
        if not result['xlsx']:
            print(f"{Fore.RED}FAILED: workbook could not be written{Style.RESET_ALL}")
            return 1
        print(f"{Fore.GREEN}SUCCESS: wrote {result['xlsx']}{Style.RESET_ALL}")
        return 0 if not result['failed'] else 1
    _, error_count = run_all_simulations(args.input_dir, args.output, args.format, args.verbose)
    return 0 if not error_count else 1


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        status = run(args)
    except WorkspaceConvoError as e:
        # messages already carry the FAILED: prefix
        print(f"{Fore.RED}{e}{Style.RESET_ALL}")
        status = 1
    sys.exit(status)


if __name__ == "__main__":
    main()
