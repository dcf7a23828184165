from io import BytesIO

import pytest
from openpyxl import Workbook, load_workbook

from app.core.exceptions import IntakeError, UnknownEntityError
from app.services.spreadsheet import build_workbook, flatten_record, parse_workbook, unflatten_row
from app.services.templates import TEMPLATES, get_template


def test_get_template_returns_a_copy():
    template = get_template("governorates")
    template[0]["name"] = "Changed"
    assert TEMPLATES["governorates"][0]["name"] == "Cairo"


def test_get_template_unknown_entity():
    with pytest.raises(UnknownEntityError):
        get_template("compounds")


def test_flatten_record():
    flat = flatten_record({
        "_comment": "ignored",
        "title": "Villa",
        "location": {"address": "123 Main", "coordinates": {"latitude": 30.1}},
        "features": ["pool", "garden"],
        "images": [{"url": "a"}],
        "amenities": [],
        "video": None,
    })

    assert flat == {
        "title": "Villa",
        "location.address": "123 Main",
        "location.coordinates.latitude": 30.1,
        "features": "pool, garden",
        "images": '[{"url": "a"}]',
        "amenities": "",
    }


def test_excel_template_layout():
    sheet = load_workbook(BytesIO(build_workbook(get_template("leads")))).active

    header = [cell.value for cell in sheet[1]]
    assert header == sorted(header)
    assert "budget.min" in header and "_comment" not in header
    assert sheet.max_row == 3
    assert sheet.freeze_panes == "A2"

    first = sheet["A1"]
    assert first.font.bold is True
    assert first.fill.fgColor.rgb == "FF4472C4"
    for letter, dimension in sheet.column_dimensions.items():
        assert 10 <= dimension.width <= 50


@pytest.mark.parametrize("entity", sorted(TEMPLATES))
def test_excel_template_parses_back_to_the_template(entity):
    records = parse_workbook(entity, build_workbook(get_template(entity)))

    expected = [{k: v for k, v in record.items() if k != "_comment"} for record in get_template(entity)]
    assert len(records) == len(expected)
    for parsed, original in zip(records, expected):
        for key in ("name", "title", "email"):
            if key in original:
                assert parsed[key] == original[key]


def test_unflatten_row_coercion():
    record = unflatten_row("properties", {
        "title": "Villa",
        "price": "5000000",
        "specifications.area": "300",
        "location.address": "123 Main Street",
        "features": "pool, garden, ",
        "images": '[{"url": "villa-img1", "isHero": true}]',
        "isFeatured": "TRUE",
        "description": "",
        "amenities": None,
    })

    assert record == {
        "title": "Villa",
        "price": 5000000,
        "specifications": {"area": 300},
        "location": {"address": "123 Main Street"},
        "features": ["pool", "garden"],
        "images": [{"url": "villa-img1", "isHero": True}],
        "isFeatured": True,
    }


def test_unflatten_keeps_phone_numbers_as_text():
    record = unflatten_row("users", {"phone": 201234567890, "password": 123456, "preferences.locations": "A, B"})
    assert record == {"phone": "201234567890", "password": "123456", "preferences": {"locations": ["A", "B"]}}


def test_parse_workbook_skips_blank_rows():
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["name", "annualAppreciationRate"])
    sheet.append(["Cairo", 7.5])
    sheet.append([None, None])
    sheet.append(["Giza", 6.8])
    buffer = BytesIO()
    workbook.save(buffer)

    assert parse_workbook("governorates", buffer.getvalue()) == [
        {"name": "Cairo", "annualAppreciationRate": 7.5},
        {"name": "Giza", "annualAppreciationRate": 6.8},
    ]


def test_parse_workbook_rejects_garbage():
    with pytest.raises(IntakeError):
        parse_workbook("governorates", b"definitely not a zip file")
