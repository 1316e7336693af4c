"""
ArangoDB store backend.

Collections: issues, evidence_items, comms_logs, subscriptions, users,
override_logs. Every document carries `user_id`; ids are document keys.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

from arango import ArangoClient
from arango.exceptions import ArangoError

from tenant_case_guard.billing.plans import resolve_plan_id
from tenant_case_guard.config import get_settings
from tenant_case_guard.domain.errors import ServiceUnavailable
from tenant_case_guard.models.enforcement import OverrideLogEntry, PlanId
from tenant_case_guard.models.issues import CommsLogEntry, EvidenceItem, Issue, IssueStatus
from tenant_case_guard.store.base import CaseStore

COLLECTIONS = (
    "issues",
    "evidence_items",
    "comms_logs",
    "subscriptions",
    "users",
    "override_logs",
)

# collection -> [(fields, index name)]
INDEXES: dict[str, list[tuple[list[str], str]]] = {
    "issues": [(["user_id", "status"], "idx_user_status")],
    "evidence_items": [(["user_id", "issue_id"], "idx_user_issue")],
    "comms_logs": [(["user_id", "issue_id"], "idx_user_issue")],
    "subscriptions": [(["user_id"], "idx_user")],
    "override_logs": [
        (["user_id", "created_at"], "idx_user_created"),
        (["issue_id"], "idx_issue"),
        (["action"], "idx_action"),
    ],
}

# Transport failures from the HTTP client (requests) surface as OSError subclasses
STORE_ERRORS = (ArangoError, OSError)


class ArangoCaseStore(CaseStore):
    def __init__(
        self,
        host: str | None = None,
        db_name: str | None = None,
        username: str | None = None,
        password: str | None = None,
        max_retries: int | None = None,
        retry_delay: int | None = None,
    ):
        settings = get_settings()
        self.host = host or settings.arango_host
        self.db_name = db_name or settings.arango_db_name
        self.username = username or settings.arango_username
        self.password = password if password is not None else settings.arango_password
        self.max_retries = max_retries or settings.arango_max_retries
        self.retry_delay = retry_delay if retry_delay is not None else settings.arango_retry_delay
        self.price_to_plan = settings.price_to_plan
        self.owner_email = settings.owner_email

        self.logger = logging.getLogger(__name__)
        self.logger.info(f"Initializing ArangoDB connection to {self.host}")
        self._init_connection()
        self.logger.info("Initialized ArangoCaseStore")

    def _init_connection(self):
        """Initialize connection to ArangoDB with retry logic."""
        for attempt in range(self.max_retries):
            try:
                self.logger.debug(
                    f"Attempting to connect to ArangoDB (attempt {attempt + 1}/{self.max_retries})"
                )
                self.client = ArangoClient(hosts=self.host)

                sys_db = self.client.db("_system", username=self.username, password=self.password)
                if not sys_db.has_database(self.db_name):
                    self.logger.info(f"Creating database: {self.db_name}")
                    sys_db.create_database(self.db_name)

                self.db = self.client.db(
                    self.db_name, username=self.username, password=self.password
                )
                version = self.db.version()
                self.logger.info(f"Successfully connected to ArangoDB version {version}")

                self._init_collections()
                self._init_indexes()
                return

            except STORE_ERRORS as e:
                if attempt < self.max_retries - 1:
                    wait_time = self.retry_delay * (attempt + 1)
                    self.logger.warning(
                        f"Failed to connect to ArangoDB (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {wait_time} seconds..."
                    )
                    time.sleep(wait_time)
                else:
                    self.logger.error(
                        f"Failed to connect to ArangoDB after {self.max_retries} attempts at {self.host}: {e}"
                    )
                    raise ServiceUnavailable(
                        f"Could not connect to ArangoDB at {self.host}. "
                        "Please ensure the database is running and accessible."
                    ) from e

    def _init_collections(self):
        for name in COLLECTIONS:
            if not self.db.has_collection(name):
                self.db.create_collection(name)
                self.logger.info(f"Created collection: {name}")

    def _init_indexes(self):
        for coll_name, specs in INDEXES.items():
            coll = self.db.collection(coll_name)
            for fields, index_name in specs:
                try:
                    coll.add_index({"type": "persistent", "fields": fields, "name": index_name})
                except ArangoError as e:
                    # Index already present with a different definition
                    self.logger.debug(f"Skipping index {index_name} on {coll_name}: {e}")

    def _query(self, aql: str, bind_vars: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            return list(self.db.aql.execute(aql, bind_vars=bind_vars))
        except STORE_ERRORS as e:
            self.logger.error(f"ArangoDB query failed: {e}", exc_info=True)
            raise ServiceUnavailable("Case store query failed") from e

    @staticmethod
    def _with_id(doc: dict[str, Any]) -> dict[str, Any]:
        data = {k: v for k, v in doc.items() if not k.startswith("_")}
        data["id"] = doc["_key"]
        return data

    def fetch_issue(self, issue_id: str, user_id: str) -> Issue | None:
        try:
            doc = self.db.collection("issues").get(issue_id)
        except STORE_ERRORS as e:
            self.logger.error(f"Failed to fetch issue {issue_id}: {e}", exc_info=True)
            raise ServiceUnavailable("Case store query failed") from e
        if not doc or doc.get("user_id") != user_id:
            return None
        return Issue.model_validate(self._with_id(doc))

    def fetch_issues(
        self, user_id: str, statuses: Iterable[IssueStatus] | None = None
    ) -> list[Issue]:
        aql = """
        FOR i IN issues
            FILTER i.user_id == @user_id
            FILTER @statuses == null OR i.status IN @statuses
            RETURN i
        """
        bind_vars = {
            "user_id": user_id,
            "statuses": [IssueStatus(s).value for s in statuses] if statuses is not None else None,
        }
        return [Issue.model_validate(self._with_id(d)) for d in self._query(aql, bind_vars)]

    def fetch_evidence(self, user_id: str, issue_id: str | None = None) -> list[EvidenceItem]:
        aql = """
        FOR e IN evidence_items
            FILTER e.user_id == @user_id
            FILTER @issue_id == null OR e.issue_id == @issue_id
            RETURN e
        """
        docs = self._query(aql, {"user_id": user_id, "issue_id": issue_id})
        return [EvidenceItem.model_validate(self._with_id(d)) for d in docs]

    def fetch_comms(self, user_id: str, issue_id: str | None = None) -> list[CommsLogEntry]:
        aql = """
        FOR c IN comms_logs
            FILTER c.user_id == @user_id
            FILTER @issue_id == null OR c.issue_id == @issue_id
            SORT c.occurred_at DESC
            RETURN c
        """
        docs = self._query(aql, {"user_id": user_id, "issue_id": issue_id})
        return [CommsLogEntry.model_validate(self._with_id(d)) for d in docs]

    def fetch_plan(self, user_id: str) -> PlanId:
        aql = """
        LET sub = FIRST(FOR s IN subscriptions FILTER s.user_id == @user_id LIMIT 1 RETURN s)
        LET user = DOCUMENT("users", @user_id)
        RETURN {subscription: sub, email: user.email}
        """
        rows = self._query(aql, {"user_id": user_id})
        row = rows[0] if rows else {}
        return resolve_plan_id(
            row.get("subscription"),
            self.price_to_plan,
            email=row.get("email"),
            owner_email=self.owner_email,
        )

    def insert_override_log(self, entry: OverrideLogEntry) -> OverrideLogEntry:
        doc = entry.model_dump(mode="json", exclude={"id"})
        try:
            meta = self.db.collection("override_logs").insert(doc)
        except STORE_ERRORS as e:
            self.logger.error(f"Failed to insert override log: {e}", exc_info=True)
            raise ServiceUnavailable("Case store write failed") from e
        return entry.model_copy(update={"id": meta["_key"]})

    def fetch_override_logs(self, user_id: str, limit: int) -> list[OverrideLogEntry]:
        aql = """
        FOR o IN override_logs
            FILTER o.user_id == @user_id
            SORT o.created_at DESC
            LIMIT @limit
            RETURN o
        """
        docs = self._query(aql, {"user_id": user_id, "limit": limit})
        return [OverrideLogEntry.model_validate(self._with_id(d)) for d in docs]

    def check_connection(self) -> None:
        self._query("RETURN 1", {})
