from doctorkoi.database import DiseaseCatalog, DoctorDirectory
from doctorkoi.seed import parse_number, seed_database


def write(path, text):
    path.write_text(text, encoding="utf-8")


def test_seed_database_loads_csv_files_once(tmp_path, db):
    write(tmp_path / "doctors_info_1.csv",
          "Doctor Name,Education,Speciality,Experience,Chamber,Location,Concentration,Consultation Fee\n"
          "Rahim Uddin,MBBS,Internal Medicine,12 Years,Popular,Dhanmondi,Fever,\"1,000\"\n"
          ",MBBS,Cardiologist,3,Somewhere,Gulshan,,500\n")
    write(tmp_path / "disease_description.csv",
          "Disease,Description\nMalaria,Mosquito-borne infection.\n")
    write(tmp_path / "Disease_Specialist.csv",
          "Disease,Specialist\nMalaria,Internal Medicine\nAcne,Dermatologist\n")
    dataset = tmp_path / "Original_Dataset.csv"
    write(dataset,
          "Disease,Symptom_1,Symptom_2,Symptom_3\n"
          "Malaria, chills, high_fever,\n"
          "Malaria, chills, sweating,\n")

    catalog, directory = DiseaseCatalog(db), DoctorDirectory(db)
    seed_database(catalog, directory, str(tmp_path), str(dataset))
    seed_database(catalog, directory, str(tmp_path), str(dataset))

    [doctor] = directory.list_doctors()
    assert doctor.experience == 12
    assert doctor.consultation_fee == 1000

    diseases = {d.name: d for d in catalog.list_diseases()}
    assert set(diseases) == {"Malaria", "Acne"}
    assert diseases["Malaria"].specialist == "Internal Medicine"
    assert diseases["Malaria"].symptoms == ["chills", "high fever", "sweating"]
    assert diseases["Acne"].description is None


def test_missing_seed_files_are_skipped(tmp_path, db):
    catalog, directory = DiseaseCatalog(db), DoctorDirectory(db)
    seed_database(catalog, directory, str(tmp_path / "nowhere"), str(tmp_path / "missing.csv"))
    assert catalog.count() == 0
    assert directory.count() == 0


def test_parse_number():
    assert parse_number("15+ years") == 15
    assert parse_number("Tk 1,200.50") == 1200.5
    assert parse_number("n/a") is None
    assert parse_number(None) is None
