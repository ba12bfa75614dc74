import os
import re
import sys
import json

from colorama import init, Fore, Style
from tqdm import tqdm

from convo_export import CONVO_WRITERS, DEFAULT_OUTPUT_DIR, safe_filename, write_convos
from workspace_errors import LoadError

init()

SOURCES = ('intents', 'entities', 'intents-entities')


def utterance_ref_part(name):
    """Upper-case slug used inside utterance list names"""
    return re.sub(r'[^A-Za-z0-9]+', '-', name).strip('-').upper()


def read_workspace_file(json_file):
    try:
        with open(json_file, 'r', encoding='utf-8') as f:
            workspace = json.load(f)
    except OSError as e:
        raise LoadError(f"FAILED: cant open file {json_file}: {e}") from e
    except json.JSONDecodeError as e:
        raise LoadError(f"FAILED: cant parse JSON in {json_file}: {e}") from e
    if not isinstance(workspace, dict):
        raise LoadError(f"FAILED: {json_file} does not contain a workspace object!")
    return workspace


def extract_intents(workspace, build_convos=True):
    """Utterance lists (and intent assertion convos) for every intent of the workspace"""
    convos = []
    utterances = []
    for intent in workspace.get('intents') or []:
        intent_name = intent.get('intent')
        examples = [example.get('text') for example in intent.get('examples') or [] if example.get('text')]
        utterance_ref = f"UTT_INTENT_{utterance_ref_part(intent_name)}"

        if build_convos:
            convos.append({
                'header': {'name': intent_name},
                'conversation': [
                    {'sender': 'me', 'messageText': utterance_ref},
                    {'sender': 'bot', 'asserters': [{'name': 'INTENT', 'args': [intent_name]}]},
                ],
            })
        utterances.append({'name': utterance_ref, 'utterances': examples})
    return convos, utterances


def extract_entities(workspace, build_convos=True):
    """Utterance lists (value plus synonyms) for every entity value of the workspace"""
    convos = []
    utterances = []
    for entity in workspace.get('entities') or []:
        entity_name = entity.get('entity')
        for entity_value in entity.get('values') or []:
            value = entity_value.get('value')
            samples = [value] + list(entity_value.get('synonyms') or [])
            utterance_ref = f"UTT_ENTITY_{utterance_ref_part(entity_name)}_{utterance_ref_part(value)}"

            if build_convos:
                convos.append({
                    'header': {'name': f"{entity_name} = {value}"},
                    'conversation': [
                        {'sender': 'me', 'messageText': utterance_ref},
                        {'sender': 'bot', 'asserters': [{'name': 'ENTITY_CONTENT', 'args': [entity_name, value]}]},
                    ],
                })
            utterances.append({'name': utterance_ref, 'utterances': samples})
    return convos, utterances


def import_workspace_intents(workspace, source='intents', build_convos=True):
    """Collect convos and utterance lists for the selected source.

    Args:
        workspace (dict): parsed workspace export
        source (str): one of 'intents', 'entities', 'intents-entities'
        build_convos (bool): also build assertion convos, not only utterance lists

    Returns:
        tuple: (convos, utterances)
    """
    if source not in SOURCES:
        raise ValueError(f"Unknown source '{source}', use one of {', '.join(SOURCES)}")

    convos = []
    utterances = []
    if source in ('intents', 'intents-entities'):
        intent_convos, intent_utterances = extract_intents(workspace, build_convos)
        convos.extend(intent_convos)
        utterances.extend(intent_utterances)
    if source in ('entities', 'intents-entities'):
        entity_convos, entity_utterances = extract_entities(workspace, build_convos)
        convos.extend(entity_convos)
        utterances.extend(entity_utterances)
    return convos, utterances


def write_utterances(utterance, output_dir):
    """Write <name>.utterances.txt: the list name, then one sample per line"""
    os.makedirs(output_dir, exist_ok=True)
    filename = os.path.join(output_dir, f"{safe_filename(utterance['name'])}.utterances.txt")
    with open(filename, 'w', encoding='utf-8') as f:
        f.write('\n'.join([utterance['name']] + list(utterance['utterances'])))
    return filename


def export_workspace_intents(json_file, output_dir=DEFAULT_OUTPUT_DIR, source='intents', build_convos=True,
                             output_format='json', show_progress=True):
    """Read a workspace export and write its utterance lists and assertion convos.

    Returns:
        tuple: (list of written files, list of (name, error) failures)
    """
    workspace = read_workspace_file(json_file)
    convos, utterances = import_workspace_intents(workspace, source, build_convos)
    print(f"{Fore.CYAN}Workspace '{workspace.get('name', '')}': {len(utterances)} utterance lists, "
          f"{len(convos)} convos{Style.RESET_ALL}")

    written, failed = write_convos(convos, output_dir, CONVO_WRITERS[output_format], show_progress)
    for utterance in tqdm(utterances, desc="Writing utterances", disable=not show_progress):
        try:
            written.append(write_utterances(utterance, output_dir))
        except OSError as e:
            print(f"{Fore.YELLOW}WARNING: writing utterances \"{utterance['name']}\" failed: {e}{Style.RESET_ALL}")
            failed.append((utterance['name'], str(e)))

    print(f"{Fore.GREEN}Wrote {len(written)} files to {output_dir}{Style.RESET_ALL}")
    return written, failed


def main():
    if len(sys.argv) < 2:
        print("Usage: python workspace_intents.py <workspace.json> [output_dir] [intents|entities|intents-entities]")
        sys.exit(1)
    output_dir = sys.argv[2] if len(sys.argv) > 2 else DEFAULT_OUTPUT_DIR
    source = sys.argv[3] if len(sys.argv) > 3 else 'intents'
    export_workspace_intents(sys.argv[1], output_dir, source)


if __name__ == "__main__":
    main()
