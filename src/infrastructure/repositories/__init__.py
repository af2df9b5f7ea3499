from .attendance import AttendanceRepository
from .enrollments import EnrollmentRepository
from .scores import ScoreRepository
from .tenancy import (
    CohortRepository,
    FacilitatorRepository,
    ParticipantRepository,
    TrainingModuleRepository,
)
from .unit_of_work import UnitOfWork

__all__ = [
    "AttendanceRepository",
    "CohortRepository",
    "EnrollmentRepository",
    "FacilitatorRepository",
    "ParticipantRepository",
    "ScoreRepository",
    "TrainingModuleRepository",
    "UnitOfWork",
]
