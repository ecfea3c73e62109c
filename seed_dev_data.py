"""Seed the development database with a demo clinic."""

from app.backend.src.db import get_engine, session_scope
from app.backend.src.models.base import Base
from app.backend.src.services.seed import seed_demo_clinic


def main() -> None:
    """Create tables (if needed) and ensure the demo clinic exists."""

    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    with session_scope() as session:
        result = seed_demo_clinic(session)
        session.flush()

        print("✅ Development data ready!")
        status = "created" if result.clinic_created else "unchanged"
        print(f"Clinic ({status}): {result.clinic.name} [id={result.clinic.id}]")
        print(
            f"Professional: {result.professional.name} [id={result.professional.id}]"
        )
        for patient in result.patients:
            print(f"Patient: {patient.name} [id={patient.id}, fee={patient.session_fee}]")
        if result.appointments_created:
            print(f"Appointments created: {result.appointments_created}")


if __name__ == "__main__":
    main()
