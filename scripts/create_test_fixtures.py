#!/usr/bin/env python3
"""
Script to create a sample xlsx template and fill data
Run this to generate files for trying out the Excel Template Filler
"""

import json
import os

from openpyxl import Workbook
from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.cell.text import InlineFont
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side


def create_sample_template(output_path="tests/fixtures/sample_template.xlsx"):
    """Create a sample template using every placeholder form"""

    wb = Workbook()
    ws = wb.active
    ws.title = "Report"

    # Header block with exact-match scalar placeholders
    ws['A1'] = "Client"
    ws['B1'] = "${client_name}"
    ws['A2'] = "Report date"
    ws['B2'] = "${report_date}"
    ws['A3'] = "Logo"
    ws['B3'] = "${logo_url}"

    # Mixed-format sentence with an embedded placeholder
    bold = InlineFont(b=True, sz=11)
    ws['A5'] = CellRichText(
        TextBlock(bold, "Prepared for "),
        TextBlock(bold, "${client_name}"),
        TextBlock(InlineFont(i=True, sz=11), " by the search team"),
    )

    # Table header
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4F81BD", end_color="4F81BD", fill_type="solid")
    for column, title in enumerate(["Mark", "Owner", "Status", "Image"], start=1):
        cell = ws.cell(row=7, column=column, value=title)
        cell.font = header_font
        cell.fill = header_fill

    # Template row expanded once per element of "marks"
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for column, field in enumerate(["mark", "owner", "status", "image"], start=1):
        cell = ws.cell(row=8, column=column, value=f"${{marks:{field}}}")
        cell.border = border
        cell.alignment = Alignment(vertical="center", wrap_text=True)

    ws['A10'] = "Total marks: ${total}"

    os.makedirs(os.path.dirname(output_path), exist_ok=True)
    wb.save(output_path)
    print(f"Created sample template: {output_path}")


def create_sample_data(output_path="tests/fixtures/sample_data.json"):
    """Create fill data matching the sample template"""
    data = {
        "client_name": "Acme Corporation Ltd",
        "report_date": "2024-05-01",
        "logo_url": "https://example.com/logo.png",
        "total": 3,
        "marks": [
            {"mark": "ACME", "owner": "Acme Corp", "status": "Registered",
             "image": "https://example.com/acme.png"},
            {"mark": "ACMEX", "owner": "Acmex GmbH", "status": "Pending", "image": ""},
            {"mark": "AKME", "owner": None, "status": "Opposed", "image": " "},
        ],
    }

    os.makedirs(os.path.dirname(output_path), exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    print(f"Created sample data: {output_path}")


def create_test_files():
    """Create all sample files"""
    print("Creating sample files...")
    print("=" * 50)

    create_sample_template()
    create_sample_data()

    print("=" * 50)
    print("All sample files created successfully!")
    print("\nNext steps:")
    print("1. Fill from the CLI:")
    print("   excel-template-filler fill -t tests/fixtures/sample_template.xlsx \\")
    print("     -d tests/fixtures/sample_data.json -o sample_output.xlsx")
    print("2. Or through the API: python scripts/run_local_server.py")
    print("   curl -X POST http://localhost:8080/api/v1/fill \\")
    print("     -F 'template_file=@tests/fixtures/sample_template.xlsx' \\")
    print("     -F \"data=$(cat tests/fixtures/sample_data.json)\" \\")
    print("     -o 'sample_output.xlsx'")


if __name__ == "__main__":
    create_test_files()
