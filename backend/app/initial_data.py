import logging

from app.core.pool import PoolManager, close_quiet, execute
from app.engines.sql.dialects import Dialect

logger = logging.getLogger(__name__)


def create_anon_role(pool: PoolManager, dialect: Dialect, role: str) -> bool:
    """Create the anonymous role unauthenticated callers run as.

    Usually fails harmlessly because the role already exists; the failure is
    logged and startup continues.
    """
    sql = dialect.create_role_sql(role)
    if not sql:
        logger.info("Backend %s has no roles; skipping anonymous role", dialect.name)
        return False
    conn = pool.get_connection()
    discard = False
    try:
        close_quiet(execute(conn, sql))
        conn.commit()
        logger.info("Created anonymous role %s", role)
        return True
    except Exception as e:
        logger.info("Failed to create anonymous role %s: %s", role, e)
        try:
            conn.rollback()
        except Exception:
            discard = True
        return False
    finally:
        pool.release(conn, discard=discard)
