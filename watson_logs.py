import os
import sys
import json

from colorama import init, Fore, Style

from convo_export import CONVO_WRITERS, DEFAULT_OUTPUT_DIR, safe_filename, write_convos
from create_spreadsheet import write_to_xlsx
from workspace_errors import LoadError

init()

# --- Configuration ---
INTENT_COLUMNS = ['conversation_id', 'date', 'last_intent', 'last_input', 'last_output']
TURN_COLUMNS = ['conversation_id', 'sender', 'messageText', 'timestamp']
INTENT_SHEET = 'Intents'
TURN_SHEET = 'Convos'
# --- End Configuration ---


def read_logs_file(json_file):
    """Read a log export: either a list of log entries or an object with a 'logs' list"""
    try:
        with open(json_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise LoadError(f"FAILED: cant open file {json_file}: {e}") from e
    except json.JSONDecodeError as e:
        raise LoadError(f"FAILED: cant parse JSON in {json_file}: {e}") from e

    logs = data.get('logs') if isinstance(data, dict) else data
    if not logs:
        raise LoadError(f"FAILED: {json_file} contains no log entries!")
    return logs


def _conversation_id(log):
    context = (log.get('response') or {}).get('context') or {}
    return context.get('conversation_id') or ''


def convert_logs_to_convos(logs):
    """Group log entries into conversations by conversation_id, in first-seen order"""
    convos = []
    convos_by_id = {}

    for log in logs:
        conversation_id = _conversation_id(log)
        convo = convos_by_id.get(conversation_id)
        if convo is None:
            convo = {'header': {'name': conversation_id}, 'conversation': []}
            convos_by_id[conversation_id] = convo
            convos.append(convo)

        request = log.get('request') or {}
        response = log.get('response') or {}
        user_text = (request.get('input') or {}).get('text')
        if user_text:
            convo['conversation'].append({
                'sender': 'me',
                'messageText': user_text,
                'timestamp': log.get('request_timestamp'),
            })
        for message_text in (response.get('output') or {}).get('text') or []:
            if message_text:
                convo['conversation'].append({
                    'sender': 'bot',
                    'messageText': message_text,
                    'timestamp': log.get('response_timestamp'),
                })
    return convos


def convert_logs_to_list(logs):
    """One row per log entry: conversation id, date, first intent, user input, first bot output"""
    rows = []
    for log in logs:
        request = log.get('request') or {}
        response = log.get('response') or {}
        intents = response.get('intents') or []
        output_texts = (response.get('output') or {}).get('text') or []
        rows.append({
            'conversation_id': _conversation_id(log),
            'date': log.get('request_timestamp'),
            'last_intent': intents[0].get('intent', '') if intents else '',
            'last_input': (request.get('input') or {}).get('text') or '',
            'last_output': output_texts[0] if output_texts else '',
        })
    return rows


def convos_to_turn_rows(convos):
    rows = []
    for convo in convos:
        for step in convo['conversation']:
            rows.append({
                'conversation_id': convo['header']['name'],
                'sender': step['sender'],
                'messageText': step.get('messageText', ''),
                'timestamp': step.get('timestamp'),
            })
    return rows


def export_logs(json_file, output_dir=DEFAULT_OUTPUT_DIR, log_format='convo', name=None,
                output_format='json', show_progress=True):
    """Convert a log export into an intent list workbook or into conversations.

    Returns:
        dict: 'xlsx' (workbook path or None), 'written' and 'failed' for convo files
    """
    logs = read_logs_file(json_file)
    name = name or os.path.splitext(os.path.basename(json_file))[0]
    xlsx_file = os.path.join(output_dir, f"{safe_filename(name)}.xlsx")
    print(f"{Fore.CYAN}Read {len(logs)} log entries from {json_file}{Style.RESET_ALL}")

    if log_format == 'intent':
        rows = convert_logs_to_list(logs)
        print(f"Logs got {len(rows)} intent lines")
        xlsx = write_to_xlsx({INTENT_SHEET: rows}, xlsx_file, columns={INTENT_SHEET: INTENT_COLUMNS})
        return {'xlsx': xlsx, 'written': [], 'failed': []}

    if log_format != 'convo':
        raise ValueError(f"Unknown log format '{log_format}', use 'convo' or 'intent'")

    convos = convert_logs_to_convos(logs)
    print(f"Logs got {len(convos)} convos")
    xlsx = write_to_xlsx({TURN_SHEET: convos_to_turn_rows(convos)}, xlsx_file, columns={TURN_SHEET: TURN_COLUMNS})
    written, failed = write_convos(convos, output_dir, CONVO_WRITERS[output_format], show_progress)
    return {'xlsx': xlsx, 'written': written, 'failed': failed}


def main():
    if len(sys.argv) < 2:
        print("Usage: python watson_logs.py <logs.json> [output_dir] [convo|intent]")
        sys.exit(1)
    output_dir = sys.argv[2] if len(sys.argv) > 2 else DEFAULT_OUTPUT_DIR
    log_format = sys.argv[3] if len(sys.argv) > 3 else 'convo'
    result = export_logs(sys.argv[1], output_dir, log_format)
    if result['xlsx']:
        print(f"{Fore.GREEN}SUCCESS: wrote {result['xlsx']}{Style.RESET_ALL}")


if __name__ == "__main__":
    main()
