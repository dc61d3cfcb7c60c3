"""
Counter Store Runtime Validator

Checks that the Redis instance holding retry counters can be trusted with them:
- Primary connection (INCR must be linearizable)
- Eviction policy (an evicted counter silently restarts a job's retry budget)
- Persistence (a restart without it resets every counter)
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

import redis

logger = logging.getLogger(__name__)


class ValidationLevel(str, Enum):
    """Validation severity levels"""
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


class ValidationResult:
    """Result of a validation check"""

    def __init__(
        self,
        level: ValidationLevel,
        check: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.level = level
        self.check = check
        self.message = message
        self.details = details or {}

    def __repr__(self):
        return f"ValidationResult(level={self.level}, check={self.check}, message={self.message})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "check": self.check,
            "message": self.message,
            "details": self.details
        }


def _unavailable(check: str, error: Exception) -> ValidationResult:
    # Managed Redis often disables CONFIG/INFO sections; not a reason to refuse work.
    logger.warning(f"Could not inspect Redis for {check}: {error}")
    return ValidationResult(
        ValidationLevel.WARNING,
        check,
        f"Could not inspect {check}: {error}",
        {"error": str(error)}
    )


class CounterStoreValidator:
    """
    Validates a Redis connection before it is used for retry counters.

    Only a replica connection is an ERROR; everything else degrades into
    warnings because counters are bounded by TTL anyway.
    """

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client
        self.results: List[ValidationResult] = []

    def validate_replica_role(self) -> ValidationResult:
        try:
            info = self.redis.info("replication")
        except redis.RedisError as e:
            return _unavailable("replica_role", e)

        role = info.get("role", "unknown")
        if role == "master":
            return ValidationResult(
                ValidationLevel.OK,
                "replica_role",
                "Connected to primary; counter increments are linearizable",
                {"role": role, "connected_slaves": info.get("connected_slaves", 0)}
            )
        if role == "slave":
            return ValidationResult(
                ValidationLevel.ERROR,
                "replica_role",
                "Connected to a replica; retry counters need the primary",
                {"role": role}
            )
        return ValidationResult(
            ValidationLevel.WARNING,
            "replica_role",
            f"Unknown replication role: {role}",
            {"role": role}
        )

    def validate_eviction_policy(self) -> ValidationResult:
        try:
            policy = self.redis.config_get("maxmemory-policy").get("maxmemory-policy", "noeviction")
        except redis.RedisError as e:
            return _unavailable("eviction_policy", e)

        if policy == "noeviction":
            return ValidationResult(
                ValidationLevel.OK,
                "eviction_policy",
                "Eviction policy is noeviction",
                {"policy": policy}
            )
        # Counters always carry a TTL, so volatile-* policies can pick them too.
        return ValidationResult(
            ValidationLevel.WARNING,
            "eviction_policy",
            f"Eviction policy is {policy}; evicted counters restart their job's retries",
            {"policy": policy}
        )

    def validate_persistence(self) -> ValidationResult:
        try:
            info = self.redis.info("persistence")
        except redis.RedisError as e:
            return _unavailable("persistence", e)

        aof_enabled = info.get("aof_enabled", 0) == 1
        rdb_last_save = info.get("rdb_last_save_time", 0)
        if aof_enabled:
            return ValidationResult(
                ValidationLevel.OK,
                "persistence",
                "AOF persistence enabled",
                {"aof_enabled": True}
            )
        if rdb_last_save > 0:
            return ValidationResult(
                ValidationLevel.OK,
                "persistence",
                "RDB snapshots enabled; counters may lose recent increments on restart",
                {"aof_enabled": False, "rdb_last_save": rdb_last_save}
            )
        return ValidationResult(
            ValidationLevel.WARNING,
            "persistence",
            "No persistence configured; a restart resets all retry counters",
            {"aof_enabled": False, "rdb_enabled": False}
        )

    def validate_all(self) -> List[ValidationResult]:
        self.results = [
            self.validate_replica_role(),
            self.validate_eviction_policy(),
            self.validate_persistence(),
        ]
        return self.results

    def validate_on_startup(self) -> bool:
        """
        Validate Redis before a worker starts taking jobs.

        Returns:
            False if any check is an ERROR, True otherwise

        Raises:
            redis.ConnectionError: Redis is unreachable
        """
        logger.info("Validating Redis for retry counters...")
        self.redis.ping()

        ok = True
        for result in self.validate_all():
            if result.level == ValidationLevel.ERROR:
                logger.error(f"ERROR [{result.check}]: {result.message}")
                ok = False
            elif result.level == ValidationLevel.WARNING:
                logger.warning(f"WARNING [{result.check}]: {result.message}")
            else:
                logger.info(f"OK [{result.check}]: {result.message}")
        return ok

    def get_summary(self) -> Dict[str, Any]:
        if not self.results:
            self.validate_all()

        return {
            "total_checks": len(self.results),
            "ok": sum(1 for r in self.results if r.level == ValidationLevel.OK),
            "warning": sum(1 for r in self.results if r.level == ValidationLevel.WARNING),
            "error": sum(1 for r in self.results if r.level == ValidationLevel.ERROR),
            "checks": [r.to_dict() for r in self.results]
        }
