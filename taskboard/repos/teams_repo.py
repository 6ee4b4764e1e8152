from typing import Optional
from sqlmodel import Session, select
from taskboard.models import Team


class TeamsRepo:
    def create(self, session: Session, team: Team) -> Team:
        session.add(team)
        session.flush()
        session.refresh(team)
        return team

    def get_by_code(self, session: Session, team_code: str) -> Optional[Team]:
        statement = select(Team).where(Team.team_code == team_code)
        return session.exec(statement).first()

    def code_exists(self, session: Session, team_code: str) -> bool:
        return self.get_by_code(session, team_code) is not None
