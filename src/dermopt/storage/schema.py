"""Database schema for the optimization store."""

from __future__ import annotations


INIT_SCHEMA = """
CREATE TABLE IF NOT EXISTS plans (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    external_id TEXT
);

CREATE TABLE IF NOT EXISTS patients (
    id TEXT PRIMARY KEY,
    external_id TEXT NOT NULL UNIQUE,
    first_name TEXT,
    last_name TEXT,
    date_of_birth DATE,
    gender TEXT,
    cost_designation TEXT NOT NULL DEFAULT 'LOW_COST'
        CHECK (cost_designation IN ('HIGH_COST', 'LOW_COST')),
    benchmark_cost REAL,
    plan_id TEXT REFERENCES plans(id),
    employer TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS current_biologics (
    patient_id TEXT PRIMARY KEY REFERENCES patients(id) ON DELETE CASCADE,
    drug_name TEXT NOT NULL,
    dose TEXT,
    frequency TEXT,
    start_date DATE,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS contraindications (
    patient_id TEXT NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
    type TEXT NOT NULL,
    notes TEXT,
    PRIMARY KEY (patient_id, type)
);

CREATE TABLE IF NOT EXISTS pharmacy_claims (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
    fill_date DATE NOT NULL,
    drug_name TEXT NOT NULL,
    ndc_code TEXT,
    days_supply INTEGER,
    quantity REAL,
    out_of_pocket REAL,
    plan_paid REAL,
    true_drug_cost REAL,
    diagnosis_code TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS formulary_drugs (
    id TEXT PRIMARY KEY,
    plan_id TEXT NOT NULL REFERENCES plans(id) ON DELETE CASCADE,
    drug_name TEXT NOT NULL,
    generic_name TEXT,
    drug_class TEXT NOT NULL DEFAULT 'OTHER',
    formulation TEXT,
    strength TEXT,
    tier INTEGER NOT NULL CHECK (tier BETWEEN 1 AND 5),
    requires_pa INTEGER NOT NULL DEFAULT 0,
    step_therapy_required INTEGER NOT NULL DEFAULT 0,
    restrictions TEXT,
    quantity_limit TEXT,
    biosimilar_of TEXT,
    fda_indications TEXT,
    ndc_code TEXT,
    annual_cost REAL,
    member_copay REAL,
    UNIQUE (plan_id, drug_name)
);

CREATE TABLE IF NOT EXISTS ndc_mappings (
    ndc_code TEXT PRIMARY KEY,
    drug_name TEXT NOT NULL,
    generic_name TEXT NOT NULL,
    drug_class TEXT NOT NULL,
    strength TEXT,
    dosage_form TEXT
);

CREATE TABLE IF NOT EXISTS knowledge_documents (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    category TEXT,
    content TEXT NOT NULL,
    source_file TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS upload_logs (
    id TEXT PRIMARY KEY,
    upload_type TEXT NOT NULL,
    file_name TEXT NOT NULL,
    uploaded_at TIMESTAMP NOT NULL,
    rows_processed INTEGER NOT NULL DEFAULT 0,
    rows_failed INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS assessments (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL REFERENCES patients(id),
    diagnosis TEXT NOT NULL,
    has_psoriatic_arthritis INTEGER NOT NULL DEFAULT 0,
    dlqi_score INTEGER NOT NULL CHECK (dlqi_score BETWEEN 0 AND 30),
    months_stable INTEGER NOT NULL,
    additional_notes TEXT,
    created_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS recommendations (
    id TEXT PRIMARY KEY,
    assessment_id TEXT NOT NULL REFERENCES assessments(id),
    patient_id TEXT NOT NULL REFERENCES patients(id),
    rank INTEGER NOT NULL,
    type TEXT NOT NULL,
    drug_name TEXT NOT NULL,
    new_dose TEXT,
    new_frequency TEXT,
    current_annual_cost REAL,
    recommended_annual_cost REAL,
    annual_savings REAL,
    savings_percent REAL,
    current_monthly_oop REAL,
    recommended_monthly_oop REAL,
    rationale TEXT,
    evidence_sources TEXT,
    monitoring_plan TEXT,
    tier INTEGER,
    requires_pa INTEGER,
    contraindicated INTEGER NOT NULL DEFAULT 0,
    contraindication_reason TEXT,
    is_stable INTEGER NOT NULL DEFAULT 0,
    is_formulary_optimal INTEGER NOT NULL DEFAULT 0,
    quadrant TEXT,
    created_at TIMESTAMP NOT NULL,
    CHECK ((current_annual_cost IS NULL) = (recommended_annual_cost IS NULL))
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_patients_plan ON patients(plan_id);
CREATE INDEX IF NOT EXISTS idx_claims_patient ON pharmacy_claims(patient_id);
CREATE INDEX IF NOT EXISTS idx_claims_fill_date ON pharmacy_claims(fill_date);
CREATE INDEX IF NOT EXISTS idx_formulary_plan ON formulary_drugs(plan_id);
CREATE INDEX IF NOT EXISTS idx_formulary_tier ON formulary_drugs(tier);
CREATE INDEX IF NOT EXISTS idx_assessments_patient ON assessments(patient_id);
CREATE INDEX IF NOT EXISTS idx_recommendations_assessment ON recommendations(assessment_id);

-- Full-text search over knowledge documents
CREATE VIRTUAL TABLE IF NOT EXISTS knowledge_fts USING fts5(
    title, content,
    content='knowledge_documents', content_rowid='rowid'
);

-- FTS triggers
CREATE TRIGGER IF NOT EXISTS knowledge_ai AFTER INSERT ON knowledge_documents BEGIN
    INSERT INTO knowledge_fts(rowid, title, content)
    VALUES (NEW.rowid, NEW.title, NEW.content);
END;

CREATE TRIGGER IF NOT EXISTS knowledge_ad AFTER DELETE ON knowledge_documents BEGIN
    INSERT INTO knowledge_fts(knowledge_fts, rowid, title, content)
    VALUES ('delete', OLD.rowid, OLD.title, OLD.content);
END;

CREATE TRIGGER IF NOT EXISTS knowledge_au AFTER UPDATE ON knowledge_documents BEGIN
    INSERT INTO knowledge_fts(knowledge_fts, rowid, title, content)
    VALUES ('delete', OLD.rowid, OLD.title, OLD.content);
    INSERT INTO knowledge_fts(rowid, title, content)
    VALUES (NEW.rowid, NEW.title, NEW.content);
END;
"""
