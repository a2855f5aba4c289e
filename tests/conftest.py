"""Shared fixtures: in-memory database, seeded knowledge base, API client."""

import os
import sys

# Must be set before database.py is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TOKENIZER_URL"] = ""
os.environ["RETRIEVAL_TELEMETRY_ENABLED"] = "0"
os.environ["SPECIFICITY_GENERIC_TERMS"] = "สมัครเรียน,ข้อมูล,ติดต่อ"
os.environ["NEGATION_DOMAIN_RULES"] = "dorm:หอ;admissions:รับสมัคร|สมัคร"

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../backend"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from database import Base, SessionLocal, engine  # noqa: E402
from exclusion_store import exclusion_store  # noqa: E402
from models import (  # noqa: E402
    Category,
    CategoryContact,
    Keyword,
    KeywordSynonym,
    NegativeKeyword,
    Officer,
    Organization,
    QuestionAnswer,
    Stopword,
)

STOPWORDS = ("ยังไง", "อยาก", "ครับ", "ค่ะ", "ไหม")
NEGATION_WORDS = ("ไม่", "ไม่เอา", "ไม่ต้องการ", "ไม่ใช่")


def seed_knowledge_base(db):
    org = Organization(id=1, name="สำนักส่งเสริมวิชาการ")
    db.add(org)
    db.add(Officer(id=1, org_id=1, name="เจ้าหน้าที่รับสมัคร"))

    admissions = Category(id="1", name="รับสมัคร", parent_id=None, pdf_url="https://example.ac.th/admission.pdf")
    dorm = Category(id="2", name="หอพัก", parent_id=None)
    fees = Category(id="3", name="ค่าธรรมเนียม", parent_id=None)
    db.add_all([admissions, dorm, fees])
    db.add_all([
        CategoryContact(category_id="1", contact="งานรับสมัคร โทร 056-717-100"),
        CategoryContact(category_id="2", contact="งานหอพัก โทร 056-717-200"),
    ])

    kw_apply = Keyword(text="สมัครเรียน")
    kw_admit = Keyword(text="รับสมัคร")
    kw_dorm = Keyword(text="หอพัก")
    kw_fee = Keyword(text="ค่าเทอม")
    db.add_all([kw_apply, kw_admit, kw_dorm, kw_fee])

    db.add_all([
        QuestionAnswer(
            id=1,
            title="การสมัครเรียน ระดับปริญญาตรี",
            text="ผู้สมัครสามารถสมัครเรียนออนไลน์ผ่านเว็บไซต์รับสมัครของมหาวิทยาลัย",
            officer_id=1,
            category_id="1",
            keywords=[kw_apply, kw_admit],
        ),
        QuestionAnswer(
            id=2,
            title="หอพักนักศึกษา",
            text="มหาวิทยาลัยมีหอพักภายในสำหรับนักศึกษา",
            category_id="2",
            keywords=[kw_dorm],
        ),
        QuestionAnswer(
            id=3,
            title="ค่าธรรมเนียมการศึกษา",
            text="ชำระค่าเทอมผ่านธนาคาร",
            category_id="3",
            keywords=[kw_fee],
        ),
    ])
    db.add_all([Stopword(word=w) for w in STOPWORDS])
    db.add_all([NegativeKeyword(word=w) for w in NEGATION_WORDS])
    db.flush()
    db.add(KeywordSynonym(input_word="หอใน", target_keyword_id=kw_dorm.id, is_active=True))
    db.commit()


@pytest.fixture()
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def seeded_db(db):
    seed_knowledge_base(db)
    return db


@pytest.fixture()
def client(seeded_db):
    from main import app

    exclusion_store._blocks.clear()
    with TestClient(app) as c:
        yield c
