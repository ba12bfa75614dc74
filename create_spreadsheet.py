import os
import re
import sys
import json

import pandas as pd

from colorama import init, Fore, Style

init()

# --- Configuration ---
XLSX_ENGINE = 'openpyxl'
MAX_SHEET_NAME_LENGTH = 31  # Excel limit
# --- End Configuration ---


def safe_sheet_name(sheet_name):
    """Sanitize sheet name for Excel (max 31 chars, avoid certain chars)"""
    return re.sub(r'[\/*?:\[\]]', '_', sheet_name)[:MAX_SHEET_NAME_LENGTH]


def _to_dataframe(rows, columns=None):
    if isinstance(rows, pd.DataFrame):
        return rows
    if not rows:
        return pd.DataFrame(columns=columns or [])
    return pd.DataFrame(rows, columns=columns)


def write_to_csv(sheet_data, base_filename, columns=None):
    """Writes one CSV file per sheet, named <base_filename>_<SheetName>.csv.

    Args:
        sheet_data (dict): sheet name -> list of row dicts (or a DataFrame)
        base_filename (str): path prefix of the CSV files
        columns (dict): optional sheet name -> column order

    Returns:
        list: paths of the files written
    """
    columns = columns or {}
    output_dir = os.path.dirname(base_filename) or "."
    base = os.path.basename(base_filename)
    os.makedirs(output_dir, exist_ok=True)

    written = []
    for sheet_name, rows in sheet_data.items():
        df = _to_dataframe(rows, columns.get(sheet_name))
        if df.empty:
            print(f"{Fore.YELLOW}Skipping empty sheet for CSV: {sheet_name}{Style.RESET_ALL}")
            continue

        safe_name = re.sub(r'[\/*?:"<>|]', '_', sheet_name)
        csv_filename = os.path.join(output_dir, f"{base}_{safe_name}.csv")
        try:
            df.to_csv(csv_filename, index=False, encoding='utf-8')
            print(f"{Fore.GREEN}Successfully wrote {len(df)} rows to {csv_filename}{Style.RESET_ALL}")
            written.append(csv_filename)
        except OSError as e:
            print(f"{Fore.RED}Error writing to CSV file {csv_filename}: {e}{Style.RESET_ALL}")
    return written


def write_to_xlsx(sheet_data, filename, columns=None):
    """Writes the sheets to a single XLSX workbook using pandas.

    Empty sheets are kept (with their header row) when a column order is
    known for them, so a workbook always has at least one visible sheet.

    Returns:
        str: the workbook path, or None if writing failed
    """
    columns = columns or {}
    output_dir = os.path.dirname(filename)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    frames = {}
    for sheet_name, rows in sheet_data.items():
        df = _to_dataframe(rows, columns.get(sheet_name))
        if df.empty and not len(df.columns):
            print(f"{Fore.YELLOW}Skipping empty sheet for XLSX: {sheet_name}{Style.RESET_ALL}")
            continue
        name = safe_sheet_name(sheet_name)
        if name != sheet_name:
            print(f"Adjusted sheet name from '{sheet_name}' to '{name}' for Excel.")
        frames[name] = df

    if not frames:
        print(f"{Fore.YELLOW}No data to write, {filename} not created.{Style.RESET_ALL}")
        return None

    try:
        with pd.ExcelWriter(filename, engine=XLSX_ENGINE) as writer:
            for name, df in frames.items():
                df.to_excel(writer, sheet_name=name, index=False)
                print(f"Wrote {len(df)} rows to sheet '{name}' in {filename}")
    except (OSError, ValueError) as e:
        print(f"{Fore.RED}Error writing to XLSX file {filename}: {e}{Style.RESET_ALL}")
        return None
    return filename


def main():
    if len(sys.argv) < 3:
        print("Usage: python create_spreadsheet.py <rows.json> <output.xlsx>")
        print("  rows.json holds an object mapping sheet names to lists of row objects")
        sys.exit(1)
    with open(sys.argv[1], 'r', encoding='utf-8') as f:
        sheet_data = json.load(f)
    if write_to_xlsx(sheet_data, sys.argv[2]):
        print(f"{Fore.GREEN}Output file generated: {sys.argv[2]}{Style.RESET_ALL}")
    else:
        sys.exit(1)


if __name__ == "__main__":
    main()
