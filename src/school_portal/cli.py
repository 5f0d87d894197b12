#!/usr/bin/env python3
from __future__ import annotations

import asyncio
import sys
from datetime import date
from typing import Any, Iterable, NoReturn

import click
from rich.console import Console
from rich.table import Table

from school_portal.app_logger import setup_logging
from school_portal.core.config import get_settings
from school_portal.exceptions import PortalError
from school_portal.schemas import (
    NotificationCreate,
    ParentCreate,
    SchoolCreate,
    StudentCreate,
)
from school_portal.storage import PostgresStorage, Storage, create_storage

# -----------------------------------------------------------------------------
# Globals
# -----------------------------------------------------------------------------
console = Console()

DEMO_SCHOOL = SchoolCreate(
    school_name="Al-Riyadh International School",
    establishment_year=2005,
    email="info@riyadh-school.edu.sa",
    phone="+966 11 123 4567",
    website="https://riyadh-school.edu.sa",
    address_line1="King Fahd Road",
    address_line2="Al Olaya District",
    city="Riyadh",
    province="Riyadh",
    postal_code="12345",
    admin_name="Ahmed Al-Saud",
    admin_position="Principal",
    admin_email="principal@riyadh-school.edu.sa",
    admin_phone="+966 11 123 4568",
    school_type="international",
    education_level="k12",
    language="dual",
    capacity=1500,
)

DEMO_PARENT = ParentCreate(
    email="parent@example.com",
    password="Password123",
    father_name="Mohammed Al-Abdullah",
    father_occupation="Engineer",
    father_contact="+966 50 123 4567",
    mother_name="Fatima Al-Abdullah",
    mother_occupation="Teacher",
    mother_contact="+966 50 123 4568",
    current_address_line1="123 Tahlia Street",
    current_address_line2="Apartment 4B",
    current_city="Riyadh",
    current_province="Riyadh",
    current_postal_code="12345",
    emergency_name="Abdullah Al-Mohammed",
    emergency_relation="Uncle",
    emergency_contact="+966 50 123 4569",
)

# (title, column attribute) per entity
VIEW_COLUMNS = {
    "Schools": (("ID", "id"), ("School ID", "school_id"), ("Name", "school_name"), ("City", "city")),
    "Parents": (("ID", "id"), ("Parent ID", "parent_id"), ("Email", "email"), ("Verified", "is_verified")),
    "Students": (
        ("ID", "id"),
        ("Student ID", "student_id"),
        ("Name", "first_name"),
        ("Grade", "grade"),
        ("Parent", "parent_id"),
        ("School", "school_id"),
    ),
    "Notifications": (("ID", "id"), ("Type", "type"), ("Title", "title"), ("Parent", "parent_id"), ("Read", "is_read")),
}


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {message}")
    sys.exit(1)


def _relational_storage() -> PostgresStorage:
    settings = get_settings()
    if not settings.use_database:
        _fail("DATABASE_URL environment variable is not set")
    try:
        return PostgresStorage.from_settings(settings)
    except PortalError as e:
        _fail(e.message)


def _render(title: str, records: Iterable[Any]) -> Table:
    columns = VIEW_COLUMNS[title]
    table = Table(title=title)
    for header, _ in columns:
        table.add_column(header)
    for record in records:
        table.add_row(*(str(getattr(record, attr)) for _, attr in columns))
    return table


# -----------------------------------------------------------------------------
# CLI
# -----------------------------------------------------------------------------
@click.group()
@click.option("--log-level", default=None, help="Override PORTAL_LOG_LEVEL for this run.")
def cli(log_level: str | None) -> None:
    """School portal storage tools."""
    setup_logging(log_level)


@cli.command()
def check() -> None:
    """Connect to DATABASE_URL and list existing tables."""
    storage = _relational_storage()

    async def _run() -> dict:
        try:
            return await storage.health_check()
        finally:
            await storage.close()

    result = asyncio.run(_run())
    if result["status"] != "healthy":
        _fail(f"Error connecting to database: {result.get('error')}")

    console.print("[green]Connected to database successfully![/green]")
    console.print(f"Current timestamp: {result['server_time']}")
    console.print(f"Response time: {result['response_time_ms']} ms")
    if not result["tables"]:
        console.print("No tables found in the database.")
    for name in result["tables"]:
        console.print(f"- {name}")
    if result["missing_tables"]:
        console.print(f"[yellow]Missing tables:[/yellow] {', '.join(result['missing_tables'])}")


@cli.command()
def setup() -> None:
    """Create the portal tables in DATABASE_URL."""
    storage = _relational_storage()

    async def _run() -> None:
        try:
            await storage.init_schema()
        finally:
            await storage.close()

    try:
        asyncio.run(_run())
    except PortalError as e:
        _fail(f"Schema setup failed: {e.message}")
    console.print("[green]Database schema is ready.[/green]")


async def _seed(storage: Storage) -> dict[str, str]:
    school = await storage.create_school(DEMO_SCHOOL)

    parent = await storage.get_parent_by_email(DEMO_PARENT.email)
    if parent is None:
        parent = await storage.create_parent(DEMO_PARENT)
        parent = await storage.verify_parent(parent.id)

    student = await storage.create_student(
        StudentCreate(
            parent_id=parent.id,
            school_id=school.id,
            first_name="Omar",
            last_name="Al-Abdullah",
            date_of_birth=date(2015, 5, 10),
            gender="male",
            grade="Grade 4",
            section="A",
            enrollment_date=date(2021, 9, 1),
        )
    )
    await storage.create_notification(
        NotificationCreate(
            parent_id=parent.id,
            school_id=school.id,
            title="Welcome",
            description=f"{student.first_name} is enrolled at {school.school_name}.",
            type="message",
        )
    )
    return {"school": school.school_id, "parent": parent.parent_id, "student": student.student_id}


@cli.command()
def seed() -> None:
    """Insert a demo school, verified parent, student and notification."""
    storage = create_storage()

    async def _run() -> dict[str, str]:
        try:
            if isinstance(storage, PostgresStorage):
                await storage.init_schema()
            return await _seed(storage)
        finally:
            await storage.close()

    try:
        created = asyncio.run(_run())
    except PortalError as e:
        _fail(f"Seeding failed: {e.message}")

    for kind, business_id in created.items():
        console.print(f"{kind.capitalize()} created: [bold]{business_id}[/bold]")
    if storage.backend_name == "memory":
        console.print("[yellow]In-memory storage: data is discarded when this command exits.[/yellow]")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON instead of tables.")
def view(as_json: bool) -> None:
    """Print every school, parent, student and notification."""
    storage = create_storage()

    async def _run() -> dict[str, list]:
        try:
            return {
                "Schools": await storage.get_all_schools(),
                "Parents": await storage.get_all_parents(),
                "Students": await storage.get_all_students(),
                "Notifications": await storage.get_all_notifications(),
            }
        finally:
            await storage.close()

    try:
        data = asyncio.run(_run())
    except PortalError as e:
        _fail(f"Error viewing storage: {e.message}")

    if as_json:
        console.print_json(
            data={k: [r.model_dump(mode="json") for r in v] for k, v in data.items()}
        )
        return

    console.print(f"Backend: [bold]{storage.backend_name}[/bold]")
    for title, records in data.items():
        console.print(_render(title, records))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
