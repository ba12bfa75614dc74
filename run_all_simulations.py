import os
import sys

from colorama import init, Fore, Style
from tqdm import tqdm

from convo_export import compile_workspace
from workspace_errors import WorkspaceConvoError

# Initialize colorama
init()


def find_workspace_files(input_dir):
    """All *.json files below input_dir, in a stable order"""
    found = []
    for root, _, files in os.walk(input_dir):
        for file in files:
            if file.lower().endswith('.json'):
                found.append(os.path.join(root, file))
    return sorted(found)


def run_all_simulations(input_dir='workspaces/', output_dir='convos/', output_format='json', verbose=False):
    """
    Finds all workspace exports in the input directory, enumerates their
    conversations and writes each workspace's convos to its own subdirectory
    of the output directory. A workspace that fails to compile is reported
    and skipped.

    Returns:
        tuple: (processed_count, error_count)
    """
    print(f"{Fore.CYAN}Starting batch conversion...{Style.RESET_ALL}")
    print(f"Input directory: {input_dir}")
    print(f"Output directory: {output_dir}")

    workspace_files = find_workspace_files(input_dir)
    if not workspace_files:
        print(f"{Fore.YELLOW}No JSON files found in {input_dir}. Exiting.{Style.RESET_ALL}")
        return 0, 0

    print(f"{Fore.GREEN}Found {len(workspace_files)} JSON files to process.{Style.RESET_ALL}")
    processed_count = 0
    error_count = 0

    for input_file_path in tqdm(workspace_files, desc="Workspaces"):
        relative_path = os.path.relpath(input_file_path, input_dir)
        output_file_dir = os.path.join(output_dir, os.path.splitext(relative_path)[0])
        print(f"{Fore.WHITE}Processing: {input_file_path} -> {output_file_dir}{Style.RESET_ALL}")

        try:
            summary = compile_workspace(
                input_file_path,
                output_dir=output_file_dir,
                output_format=output_format,
                verbose=verbose,
                show_progress=False,
            )
        except WorkspaceConvoError as e:
            print(f"{Fore.RED}  Error processing {input_file_path}: {e}{Style.RESET_ALL}")
            error_count += 1
            continue

        if summary['failed']:
            print(f"{Fore.YELLOW}  {len(summary['failed'])} convos of {input_file_path} could not be written{Style.RESET_ALL}")
        processed_count += 1

    print(f"{Fore.CYAN}Batch conversion complete.{Style.RESET_ALL}")
    print(f"Successfully processed: {processed_count} files")
    print(f"Errors encountered: {error_count} files")
    return processed_count, error_count


if __name__ == "__main__":
    if len(sys.argv) > 1:
        run_all_simulations(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else 'convos/')
    else:
        run_all_simulations(input_dir='workspaces/', output_dir='convos/')
