import os

import pandas as pd

from create_spreadsheet import safe_sheet_name, write_to_csv, write_to_xlsx


def test_safe_sheet_name():
    assert safe_sheet_name('a/b:c') == 'a_b_c'
    assert len(safe_sheet_name('x' * 40)) == 31


def test_xlsx_keeps_empty_sheets_with_columns(tmp_path):
    filename = str(tmp_path / 'book.xlsx')
    result = write_to_xlsx(
        {'Rows': [{'id': 'a', 'title': 'A'}], 'Empty': [], 'Dropped': []},
        filename,
        columns={'Empty': ['id', 'title']},
    )
    assert result == filename
    sheets = pd.read_excel(filename, sheet_name=None)
    assert list(sheets) == ['Rows', 'Empty']
    assert list(sheets['Empty'].columns) == ['id', 'title']


def test_xlsx_without_data(tmp_path):
    filename = str(tmp_path / 'none.xlsx')
    assert write_to_xlsx({'Empty': []}, filename) is None
    assert not os.path.exists(filename)


def test_csv_skips_empty_sheets(tmp_path):
    written = write_to_csv({'Rows': [{'id': 'a'}], 'Empty': []}, str(tmp_path / 'report'))
    assert written == [str(tmp_path / 'report_Rows.csv')]
