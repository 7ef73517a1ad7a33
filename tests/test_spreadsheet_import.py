"""
Spreadsheet import tests (CSV uploads)
"""
import pytest
from fastapi import HTTPException

from leaddesk.core.spreadsheet import read_rows, pick
from leaddesk.models import Roles
from leaddesk.repositories.lead_repo import LeadRepository, CompanyRepository
from leaddesk.services.inventory_service import InventoryService
from leaddesk.services.lead_service import LeadService


LEADS_CSV = (
    "Client Name,Email,Lead Details,Company\n"
    "Jane Doe,jane@acme.com,Wants oak flooring,Acme\n"
    "Bob,not-an-email,,Acme\n"
    ",nobody@acme.com,,\n"
    "Carl,carl@acme.com,,acme\n"
).encode("utf-8")

INVENTORY_CSV = (
    "PRODUCT,Boxes,Sq Ft/box,Tot Sq Ft,Notes\n"
    "PARMA SPC,,,,\n"
    "Oak Natural,10,23.5,235,\n"
    "Walnut,2,20,40,(drop)\n"
    ",5,,,\n"
).encode("utf-8")


def test_read_rows_numbers_rows_like_spreadsheets():
    rows = read_rows("leads.csv", LEADS_CSV)

    assert rows[0][0] == 2
    assert rows[0][1]["Client Name"] == "Jane Doe"
    assert len(rows) == 4


def test_read_rows_rejects_other_formats():
    with pytest.raises(HTTPException) as exc:
        read_rows("leads.pdf", b"%PDF")
    assert exc.value.status_code == 400


def test_pick_is_case_insensitive():
    row = {"client name": "Jane", "EMAIL": "jane@acme.com"}
    assert pick(row, "Client Name", "Name") == "Jane"
    assert pick(row, "Email") == "jane@acme.com"
    assert pick(row, "Phone") == ""


@pytest.mark.asyncio
async def test_lead_import_reports_bad_rows(session, make_user):
    admin = await make_user()

    result = await LeadService(session).import_file(admin, "leads.csv", LEADS_CSV)

    assert result.total_rows == 4
    assert result.imported == 2
    assert result.failed == 2
    assert [e["row"] for e in result.errors] == [3, 4]

    jane = await LeadRepository(session).get_first_by_email("jane@acme.com")
    assert jane.lead_details == "Wants oak flooring"
    assert jane.source == "import"
    assert jane.assigned_to is None


@pytest.mark.asyncio
async def test_lead_import_reuses_companies_by_name(session, make_user):
    admin = await make_user()

    await LeadService(session).import_file(admin, "leads.csv", LEADS_CSV)

    companies = await CompanyRepository(session).list_by_name()
    assert len(companies) == 1
    jane = await LeadRepository(session).get_first_by_email("jane@acme.com")
    carl = await LeadRepository(session).get_first_by_email("carl@acme.com")
    assert jane.company_id == carl.company_id == companies[0].id


@pytest.mark.asyncio
async def test_member_import_assigns_to_member(session, make_user):
    member = await make_user(username="member", role=Roles.MEMBER)

    await LeadService(session).import_file(member, "leads.csv", LEADS_CSV)

    jane = await LeadRepository(session).get_first_by_email("jane@acme.com")
    assert jane.assigned_to == member.id


@pytest.mark.asyncio
async def test_inventory_import_tracks_headings(session):
    service = InventoryService(session)

    result = await service.import_file("stock.csv", INVENTORY_CSV)

    assert result.total_rows == 4
    assert result.headings == 1
    assert result.imported == 2
    assert result.failed == 1

    items = await service.list()
    assert {i.product for i in items} == {"Oak Natural", "Walnut"}
    assert all(i.product_heading == "PARMA SPC" for i in items)
    walnut = next(i for i in items if i.product == "Walnut")
    assert walnut.notes == "(drop)"
    assert walnut.boxes == "2"
