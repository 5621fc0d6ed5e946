from wellspring.services.file_access import (
    DOCX_MIME,
    PDF_MIME,
    LocalFileReader,
    NullFileReader,
    build_file_reader,
    find_local_contract,
    pick_contract_file,
)


def test_pdf_is_preferred_over_word():
    names = ["LA_Electricity_JQS.docx", "LA_Electricity_JQS.pdf", "OK_Smith.pdf"]
    assert pick_contract_file(names, "LA", "Jane Q Smith", "Electricity") == "LA_Electricity_JQS.pdf"


def test_last_name_match():
    names = ["Agreement_OK_Smith.docx", "Agreement_OK_Jones.docx"]
    assert pick_contract_file(names, "OK", "Pat Jones", "Policy") == "Agreement_OK_Jones.docx"


def test_state_only_fallback():
    names = ["LA_random.docx", "OK_other.pdf"]
    assert pick_contract_file(names, "LA", "Jane Smith", "Policy") == "LA_random.docx"


def test_no_match():
    assert pick_contract_file(["notes.txt", "ID_budget.xlsx"], "ID", "Jane Smith", "Policy") is None


def test_null_reader_finds_nothing():
    reader = NullFileReader()
    assert reader.list_files() == []
    assert find_local_contract(reader, "LA", "Jane Smith", "Policy") is None
    assert isinstance(build_file_reader(None), NullFileReader)


def test_local_reader(tmp_path):
    (tmp_path / "InnerSpace_Agreement_ID_Policy_JS.pdf").write_bytes(b"%PDF-1.7")
    (tmp_path / "InnerSpace_Agreement_ID_Policy_JS.docx").write_bytes(b"PK")
    (tmp_path / "archive").mkdir()

    reader = build_file_reader(str(tmp_path))
    assert isinstance(reader, LocalFileReader)
    assert reader.list_files() == ["InnerSpace_Agreement_ID_Policy_JS.docx", "InnerSpace_Agreement_ID_Policy_JS.pdf"]

    attachment = find_local_contract(reader, "ID", "Jane Smith", "Policy")
    assert attachment.filename == "InnerSpace_Agreement_ID_Policy_JS.pdf"
    assert attachment.mime_type == PDF_MIME
    assert attachment.is_pdf
    assert attachment.content == b"%PDF-1.7"

    assert reader.read("InnerSpace_Agreement_ID_Policy_JS.docx").mime_type == DOCX_MIME


def test_local_reader_stays_inside_its_directory(tmp_path):
    root = tmp_path / "contracts"
    root.mkdir()
    (tmp_path / "secret.pdf").write_bytes(b"nope")

    reader = LocalFileReader(str(root))
    assert reader.read("../secret.pdf") is None
    assert reader.read("missing.pdf") is None


def test_missing_directory_lists_nothing(tmp_path):
    assert LocalFileReader(str(tmp_path / "absent")).list_files() == []
