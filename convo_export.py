import os
import re
import sys
import json

from colorama import init, Fore, Style
from tqdm import tqdm

from condition_parser import USER_RESPONSE_ENTITY
from create_spreadsheet import write_to_xlsx
from dialog_graph import load_workspace
from dialog_simulator import DialogSimulator

# Initialize colorama for colored terminal output
init()

# --- Configuration ---
CONVO_ID_WIDTH = 3
DEFAULT_OUTPUT_DIR = 'convos'
TXT_SPEAKERS = {'me': 'User', 'bot': 'Bot'}
# --- End Configuration ---


def safe_filename(name):
    """Basic sanitization of a name for use as a file name"""
    return re.sub(r'[\/*?:"<>|\s]+', '_', name).strip('_') or 'convo'


def format_log(log):
    """One JSON object per line, wrapped as a JSON array"""
    return '[\n' + ',\n'.join(json.dumps(entry, ensure_ascii=False, separators=(',', ':')) for entry in log) + ']'


def build_convos(paths, workspace_name):
    """Give each enumerated path a sequential id and a header.

    Returns:
        list: conversations as {'header': {'name', 'description'}, 'conversation': [...]}
    """
    convos = []
    for i, path in enumerate(paths):
        convo_id = str(i).zfill(CONVO_ID_WIDTH)
        convos.append({
            'header': {
                'name': f"{workspace_name}{convo_id}",
                'description': format_log(path.log),
            },
            'conversation': path.conversation_as_dicts(),
        })
    return convos


def write_convo_json(convo, output_dir):
    """Write one conversation as <name>.convo.json"""
    os.makedirs(output_dir, exist_ok=True)
    filename = os.path.join(output_dir, f"{safe_filename(convo['header']['name'])}.convo.json")
    content = json.dumps(convo, indent=2, ensure_ascii=False)
    with open(filename, 'w', encoding='utf-8') as f:
        f.write(content)
    return filename


def format_step_line(step):
    """Transcript line: "{speaker}: {text} || [buttons] a, b || [media] src"""
    speaker = TXT_SPEAKERS.get(step.get('sender'), step.get('sender', 'Unknown'))
    parts = []
    text = step.get('messageText')
    if text:
        parts.append(text.replace('\n', ' / '))
    for user_input in step.get('userInputs', []):
        parts.append(f"[{user_input['name'].lower()}] {', '.join(str(a) for a in user_input['args'])}")
    line = f"{speaker}: {' || '.join(parts) if parts else ''}".rstrip()
    for asserter in step.get('asserters', []):
        line += f" || [{asserter['name'].lower()}] {', '.join(str(a) for a in asserter['args'])}"
    return line


def write_convo_txt(convo, output_dir):
    """Write one conversation as a plain transcript, <name>.convo.txt"""
    os.makedirs(output_dir, exist_ok=True)
    filename = os.path.join(output_dir, f"{safe_filename(convo['header']['name'])}.convo.txt")
    lines = [convo['header']['name'], '']
    lines.extend(format_step_line(step) for step in convo['conversation'])
    with open(filename, 'w', encoding='utf-8') as f:
        f.write('\n'.join(lines) + '\n')
    return filename


CONVO_WRITERS = {
    'json': write_convo_json,
    'txt': write_convo_txt,
}


def write_convos(convos, output_dir=DEFAULT_OUTPUT_DIR, writer=write_convo_json, show_progress=True):
    """Hand each conversation to the writer; a failed write is reported and does not stop the others.

    Returns:
        tuple: (list of written file names, list of (convo name, error message))
    """
    written = []
    failed = []
    for convo in tqdm(convos, desc="Writing convos", disable=not show_progress):
        name = convo['header']['name']
        try:
            written.append(writer(convo, output_dir))
        except (OSError, TypeError, ValueError) as e:
            print(f"{Fore.YELLOW}WARNING: writing convo \"{name}\" failed: {e}{Style.RESET_ALL}")
            failed.append((name, str(e)))
    return written, failed


def report_coverage(graph, coverage, convo_count, user_response_entity=USER_RESPONSE_ENTITY):
    """Print graph coverage statistics and return them as a dict"""
    skipped = coverage.skipped_nodes(graph)
    not_processed = coverage.not_processed(graph)

    print(f"\n{Fore.WHITE}===== COVERAGE ====={Style.RESET_ALL}")
    print(f"All nodes: {coverage.total_nodes}")
    print(f"Processed: {coverage.processed_count}")
    print(f"Created conversations: {convo_count}")
    if skipped:
        print(f"{Fore.YELLOW}Recursive nodes: {json.dumps(skipped, ensure_ascii=False)}{Style.RESET_ALL}")
    else:
        print("Recursive nodes: none")
    if not_processed:
        print(f"{Fore.YELLOW}Not processed nodes: {json.dumps(not_processed, ensure_ascii=False)}{Style.RESET_ALL}")
    else:
        print("Not processed nodes: none")
    print(f"All user choices will be put into '{user_response_entity}' entity")

    return {
        'total_nodes': coverage.total_nodes,
        'processed': coverage.processed_count,
        'conversations': convo_count,
        'skipped_at_least_once': skipped,
        'not_processed': not_processed,
    }


def export_coverage_to_xlsx(graph, coverage, filename):
    """Coverage report as a workbook: processed, recursive and unreached nodes"""
    processed = [{'id': node_id, 'title': graph.nodes_by_id[node_id].title} for node_id in coverage.processed]
    sheets = {
        'Processed': processed,
        'Recursive': coverage.skipped_nodes(graph),
        'NotProcessed': coverage.not_processed(graph),
    }
    columns = {
        'Processed': ['id', 'title'],
        'Recursive': ['id', 'title'],
        'NotProcessed': ['id', 'title', 'condition'],
    }
    return write_to_xlsx(sheets, filename, columns=columns)


def compile_workspace(json_file, output_dir=DEFAULT_OUTPUT_DIR, output_format='json',
                      coverage_xlsx=None, verbose=False, show_progress=True):
    """Load a workspace export, enumerate its conversations and write them out.

    Fails fast (raises) on malformed input; write failures are only counted.

    Returns:
        dict: coverage summary plus 'written' and 'failed'
    """
    if output_format not in CONVO_WRITERS:
        raise ValueError(f"Unknown output format '{output_format}', use one of {', '.join(CONVO_WRITERS)}")

    graph = load_workspace(json_file, verbose=verbose)
    simulator = DialogSimulator(graph, verbose=verbose)
    paths, coverage = simulator.simulate_all_paths()
    convos = build_convos(paths, graph.name)

    summary = report_coverage(graph, coverage, len(convos), simulator.user_response_entity)
    written, failed = write_convos(convos, output_dir, CONVO_WRITERS[output_format], show_progress)
    summary['written'] = written
    summary['failed'] = failed

    if coverage_xlsx:
        summary['coverage_xlsx'] = export_coverage_to_xlsx(graph, coverage, coverage_xlsx)

    color = Fore.GREEN if not failed else Fore.YELLOW
    print(f"{color}Wrote {len(written)} of {len(convos)} conversations to {output_dir}{Style.RESET_ALL}")
    return summary


def main():
    if len(sys.argv) < 2:
        print("Usage: python convo_export.py <workspace.json> [output_dir]")
        sys.exit(1)
    output_dir = sys.argv[2] if len(sys.argv) > 2 else DEFAULT_OUTPUT_DIR
    compile_workspace(sys.argv[1], output_dir)


if __name__ == "__main__":
    main()
