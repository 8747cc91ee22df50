# ABOUTME: SQL DDL statements for the shelfmatch result store.
# ABOUTME: Defines per-stage candidate rows, selected matches, and schema migrations.

SCHEMA_V1 = """
-- One row per (item, candidate, stage): the audit trail of every pipeline stage
CREATE TABLE stage_results (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id           TEXT NOT NULL,
    stage             TEXT NOT NULL,
    candidate_key     TEXT NOT NULL,
    rank              INTEGER NOT NULL,
    title             TEXT NOT NULL,
    brand             TEXT,
    size              TEXT,
    image_url         TEXT,
    query             TEXT,
    similarity_score  REAL,
    match_tier        TEXT,
    confidence        REAL,
    visual_similarity REAL,
    reason            TEXT,
    match_reasons     TEXT,
    created_at        TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now')),
    updated_at        TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE UNIQUE INDEX idx_stage_results_unique
    ON stage_results(item_id, candidate_key, stage);
CREATE INDEX idx_stage_results_item_stage ON stage_results(item_id, stage, rank);

-- Schema versioning for future migrations
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""

MIGRATION_V2 = """
-- At most one authoritative match per item; re-runs overwrite it
CREATE TABLE selected_matches (
    item_id           TEXT PRIMARY KEY,
    candidate_key     TEXT NOT NULL,
    tier              TEXT NOT NULL,
    confidence        REAL NOT NULL,
    method            TEXT NOT NULL,
    reasoning         TEXT,
    visual_similarity REAL,
    selected_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (2);
"""

MIGRATIONS: list[tuple[int, str]] = [
    (2, MIGRATION_V2),
]
