#!/usr/bin/env python3
"""
Development database seeding script.
Creates a demo team with a leader, members in every approval state and a
task whose subtasks cover the claim/assign/progress lifecycle.
"""

from sqlmodel import Session, select
from taskboard.database import engine, init_db
from taskboard.models import User, SubtaskProgress
from taskboard.services import membership, tasks

LEADER_EMAIL = "alice.leader@example.com"
DEMO_PASSWORD = "demo-password"


def create_sample_data():
    """Create sample data for development"""
    init_db()

    with Session(engine) as session:
        print("🌱 Seeding development database...")

        existing = session.exec(select(User).where(User.email == LEADER_EMAIL)).first()
        if existing:
            print("✅ Demo data already exists, skipping seed")
            print(f"   • Team code: {existing.team_code}")
            return

        result = membership.register_leader(
            session,
            email=LEADER_EMAIL,
            password=DEMO_PASSWORD,
            name="Alice Leader",
            team_name="Demo Team",
        )
        team_code = result["teamCode"]
        leader_id = result["user"]["id"]
        print(f"✅ Created team Demo Team (code: {team_code})")

        member_ids = {}
        for key, name in (("bob", "Bob Approved"), ("carol", "Carol Pending"), ("dave", "Dave Rejected")):
            member = membership.register_member(
                session,
                email=f"{key}@example.com",
                password=DEMO_PASSWORD,
                name=name,
                team_code=team_code,
            )
            member_ids[key] = member["user"]["id"]

        membership.approve_member(
            session, user_id=member_ids["bob"], team_code=team_code, approved_by=leader_id
        )
        membership.reject_member(
            session, user_id=member_ids["dave"], team_code=team_code, rejected_by=leader_id
        )
        print("✅ Created members: bob (approved), carol (pending), dave (rejected)")

        task = tasks.create_task(
            session,
            title="Launch landing page",
            description="First public version of the marketing site",
            team_code=team_code,
            created_by=leader_id,
            subtasks=[
                {"title": "Write copy"},
                {"title": "Design hero section", "assigned_to": member_ids["bob"]},
                {"title": "Set up analytics"},
            ],
            assign_specific=True,
        )
        first, second, _ = task["subtasks"]
        tasks.take_subtask(session, subtask_id=first["id"], user_id=member_ids["bob"])
        tasks.update_progress(
            session,
            subtask_id=second["id"],
            progress=SubtaskProgress.testing,
            user_id=member_ids["bob"],
        )
        print(f"✅ Created task: {task['title']} (id: {task['id']}) with 3 subtasks")

        print("\n🎉 Development database seeded successfully!")
        print(f"   • Log in with {LEADER_EMAIL} / {DEMO_PASSWORD} / {team_code}")


if __name__ == "__main__":
    create_sample_data()
