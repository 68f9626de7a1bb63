import pytest
from flask import Flask

from config import TestConfig
from extensions import db
from src.app_factory import create_app
from src.services import catalog_service, doctor_service, patient_service
from tests.helpers import FULL_WEEK


@pytest.fixture
def app() -> Flask:
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app: Flask):
    with app.app_context():
        yield


@pytest.fixture
def client(app: Flask):
    return app.test_client()


@pytest.fixture
def clinic(app_ctx):
    """One doctor, two services (45 and 30 minutes) and one patient."""
    doctor = doctor_service.create_doctor(name="Dr. Sara Khan", specialization="Orthodontics", working_hours=FULL_WEEK)
    other_doctor = doctor_service.create_doctor(name="Dr. Omar Ali", specialization="General", working_hours=FULL_WEEK)
    consult = catalog_service.create_service(category="General", name="Consultation", duration_minutes=45)
    cleaning = catalog_service.create_service(category="Hygiene", name="Cleaning", duration_minutes=30)
    patient = patient_service.create_patient(full_name="Alice Smith", phone_number="+971501234567", email="alice@test.com")
    return {
        "doctor_id": doctor.id,
        "other_doctor_id": other_doctor.id,
        "consult_id": consult.id,
        "cleaning_id": cleaning.id,
        "patient_id": patient.id,
    }

