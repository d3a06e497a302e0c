#!/usr/bin/env python3
"""
Seed the tickets table

Usage:
    python scripts/seed_data.py --samples
    python scripts/seed_data.py --from-jira --projects BUG,WEB --max 200
"""
import argparse
import asyncio
from datetime import datetime, timedelta, timezone
from typing import List

from dotenv import load_dotenv
from tqdm import tqdm

load_dotenv()

from ticket_dedup.config import get_settings  # noqa: E402
from ticket_dedup.models.schemas import TicketRecord  # noqa: E402
from ticket_dedup.repositories.ticket_repository import TicketRepository  # noqa: E402
from ticket_dedup.services.jira import JiraClient  # noqa: E402


def sample_tickets() -> List[TicketRecord]:
    """Demo tickets covering several projects, statuses and labels"""
    now = datetime.now(timezone.utc)
    return [
        TicketRecord(
            ticket_key="AUTO-101",
            title="Automation test failure in login module",
            description=(
                "The automation tests for the login module are failing consistently. "
                "Need to investigate and fix the test scripts. The issue appears to be "
                "related to element locators."
            ),
            ticket_type="Bug", status="Open", priority="High", project_key="AUTO",
            labels=["automation", "testing", "login", "urgent"],
            affected_files=["tests/e2e/login_spec.js"],
            created_date=now - timedelta(days=5),
        ),
        TicketRecord(
            ticket_key="AUTO-102",
            title="Implement automation for user registration flow",
            description=(
                "Create automated test scripts for the complete user registration workflow "
                "including email verification and profile setup."
            ),
            ticket_type="Story", status="In Progress", priority="Medium", project_key="AUTO",
            labels=["automation", "registration", "workflow"],
            created_date=now - timedelta(days=10),
        ),
        TicketRecord(
            ticket_key="BUG-201",
            title="Login button not responding on mobile devices",
            description=(
                "Users report that the login button on mobile devices becomes unresponsive "
                "after entering credentials. This affects both iOS and Android platforms."
            ),
            ticket_type="Bug", status="Open", priority="Critical", project_key="BUG",
            labels=["mobile", "login", "critical", "ios", "android"],
            affected_files=["src/auth/Login.cs", "src/mobile/LoginView.swift"],
            created_date=now - timedelta(days=3),
        ),
        TicketRecord(
            ticket_key="EPIC-301",
            title="Priority handling system enhancement",
            description=(
                "Enhance the priority handling system to better categorize and route tickets "
                "based on business impact and urgency."
            ),
            ticket_type="Epic", status="Planning", priority="High", project_key="EPIC",
            labels=["priority", "enhancement", "system", "automation"],
            created_date=now - timedelta(days=30),
        ),
        TicketRecord(
            ticket_key="TASK-401",
            title="Setup CI/CD automation pipeline",
            description=(
                "Configure continuous integration and deployment automation pipeline for "
                "faster and more reliable releases."
            ),
            ticket_type="Task", status="Done", priority="Medium", project_key="TASK",
            labels=["automation", "cicd", "deployment", "pipeline"],
            affected_files=[".github/workflows/deploy.yml"],
            pull_request_url="https://github.com/acme/platform/pull/118",
            pr_links=["https://github.com/acme/platform/pull/118"],
            resolution="Fixed",
            created_date=now - timedelta(days=45),
            resolved_date=now - timedelta(days=20),
        ),
        TicketRecord(
            ticket_key="STORY-501",
            title="User profile automation testing",
            description=(
                "As a QA engineer, I want automated tests for user profile management so that "
                "we can ensure profile updates work correctly across all scenarios."
            ),
            ticket_type="Story", status="Open", priority="Low", project_key="STORY",
            labels=["automation", "testing", "profile", "qa"],
            created_date=now - timedelta(days=7),
        ),
        TicketRecord(
            ticket_key="BUG-601",
            title="High priority search results not sorting correctly",
            description=(
                "When searching for tickets with high priority, the results are not being "
                "sorted correctly by priority level."
            ),
            ticket_type="Bug", status="In Review", priority="High", project_key="BUG",
            labels=["priority", "search", "sorting", "bug"],
            affected_files=["src/search/SortOrder.cs"],
            created_date=now - timedelta(days=2),
        ),
    ]


async def seed_samples(repo: TicketRepository) -> int:
    print("📝 Inserting sample tickets...")
    written = await repo.bulk_upsert(sample_tickets())
    print(f"✅ {written} sample tickets saved")
    return written


async def seed_from_jira(repo: TicketRepository, projects: List[str], max_tickets: int) -> int:
    jira = JiraClient()
    total = 0
    for project_key in tqdm(projects, desc="Projects"):
        tickets = await jira.get_project_tickets(project_key, max_tickets)
        if not tickets:
            print(f"⚠️  No tickets found for {project_key}")
            continue
        total += await repo.bulk_upsert(tickets)
    print(f"✅ {total} tickets saved from Jira")
    return total


async def main():
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Seed the tickets table")
    parser.add_argument("--samples", action="store_true", help="Insert demo tickets")
    parser.add_argument("--from-jira", action="store_true", help="Copy project history from Jira")
    parser.add_argument("--projects", default=settings.jira_target_projects,
                        help="Comma-separated project keys (default: JIRA_TARGET_PROJECTS)")
    parser.add_argument("--max", type=int, default=settings.jira_max_historical_tickets,
                        help="Maximum tickets per project")
    args = parser.parse_args()

    if not args.samples and not args.from_jira:
        parser.error("choose --samples and/or --from-jira")

    repo = TicketRepository()
    if args.samples:
        await seed_samples(repo)
    if args.from_jira:
        projects = [p.strip() for p in args.projects.split(",") if p.strip()]
        await seed_from_jira(repo, projects, args.max)

    print(f"📊 Tickets in store: {await repo.count()}")


if __name__ == "__main__":
    asyncio.run(main())
