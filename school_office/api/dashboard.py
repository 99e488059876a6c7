from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from school_office.database import StudentDB, SubjectDB, TeacherDB, get_db

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("")
async def dashboard(db: Session = Depends(get_db)):
    recent = db.query(StudentDB).order_by(StudentDB.created_at.desc()).limit(5).all()
    return {
        "totalStudents": db.query(StudentDB).filter(StudentDB.status == "Active").count(),
        "totalTeachers": db.query(TeacherDB).filter(TeacherDB.status == "Active").count(),
        "totalSubjects": db.query(SubjectDB).count(),
        "recentActivities": [
            {"name": s.name, "created_at": s.created_at.isoformat() if s.created_at else None}
            for s in recent
        ],
    }
