from typing import Optional

from sqlalchemy.orm import Session

from modules.cases.models.case import Case


class CaseRepository:
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, case: Case) -> Case:
        self.db.add(case)
        self.db.commit()
        self.db.refresh(case)
        return case

    def get_by_id(self, case_id: str) -> Optional[Case]:
        return self.db.get(Case, case_id)

    def get_by_number(self, case_number: str) -> Optional[Case]:
        return (
            self.db
            .query(Case)
            .filter(Case.case_number == case_number)
            .first()
        )

    def delete(self, case: Case, commit: bool = True) -> None:
        self.db.delete(case)
        if commit:
            self.db.commit()
