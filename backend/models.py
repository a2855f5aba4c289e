from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean, Float, Table, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base


answers_keywords = Table(
    "answers_keywords",
    Base.metadata,
    Column("qa_id", Integer, ForeignKey("questions_answers.id", ondelete="CASCADE"), primary_key=True),
    Column("keyword_id", Integer, ForeignKey("keywords.id", ondelete="CASCADE"), primary_key=True),
)


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    officers = relationship("Officer", back_populates="organization")


class Officer(Base):
    __tablename__ = "officers"

    id = Column(Integer, primary_key=True, index=True)
    org_id = Column(Integer, ForeignKey("organizations.id"), nullable=True, index=True)
    name = Column(String(255), nullable=True)

    organization = relationship("Organization", back_populates="officers")
    answers = relationship("QuestionAnswer", back_populates="officer")


class Category(Base):
    __tablename__ = "categories"

    # Category ids are human-assigned codes ("1", "1-2", ...), not serials.
    id = Column(String(32), primary_key=True)
    name = Column(String(255), nullable=False)
    parent_id = Column(String(32), ForeignKey("categories.id"), nullable=True)  # root: NULL or self
    pdf_url = Column(String(512), nullable=True)

    contacts = relationship("CategoryContact", back_populates="category", cascade="all, delete-orphan")
    answers = relationship("QuestionAnswer", back_populates="category")


class CategoryContact(Base):
    __tablename__ = "category_contacts"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(String(32), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    contact = Column(Text, nullable=False)

    category = relationship("Category", back_populates="contacts")


class Keyword(Base):
    __tablename__ = "keywords"

    id = Column(Integer, primary_key=True, index=True)
    text = Column(String(255), unique=True, nullable=False)

    answers = relationship("QuestionAnswer", secondary=answers_keywords, back_populates="keywords")


class QuestionAnswer(Base):
    __tablename__ = "questions_answers"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(512), nullable=False)
    text = Column(Text, nullable=False)
    review_date = Column(DateTime(timezone=True), nullable=True)
    officer_id = Column(Integer, ForeignKey("officers.id"), nullable=True)
    category_id = Column(String(32), ForeignKey("categories.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    officer = relationship("Officer", back_populates="answers")
    category = relationship("Category", back_populates="answers")
    keywords = relationship("Keyword", secondary=answers_keywords, back_populates="answers")


class KeywordSynonym(Base):
    __tablename__ = "keyword_synonyms"

    id = Column(Integer, primary_key=True, index=True)
    input_word = Column(String(255), nullable=False, index=True)
    target_keyword_id = Column(Integer, ForeignKey("keywords.id", ondelete="CASCADE"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    target = relationship("Keyword")


class Stopword(Base):
    __tablename__ = "stopwords"

    id = Column(Integer, primary_key=True, index=True)
    word = Column(String(255), unique=True, nullable=False)


class SemanticSimilarity(Base):
    __tablename__ = "semantic_similarities"

    id = Column(Integer, primary_key=True, index=True)
    word1 = Column(String(255), nullable=False, index=True)
    word2 = Column(String(255), nullable=False)
    score = Column(Float, nullable=False)  # 0..1

    __table_args__ = (UniqueConstraint("word1", "word2", name="uq_semantic_pair"),)


class NegativeKeyword(Base):
    __tablename__ = "negative_keywords"

    id = Column(Integer, primary_key=True, index=True)
    word = Column(String(255), unique=True, nullable=False)
    weight = Column(Float, nullable=False, default=-1.0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
