"""G-code analysis task."""

import asyncio
import logging
from typing import Any, Dict

from printshop.celery_app import ANALYZE_GCODE_TASK
from printshop.models.gcode import Gcode
from printshop.services.gcode_analysis import GcodeAnalysisError, analyze_gcode as extract_metadata
from printshop.services.gcode_service import analysis_summary, apply_analysis
from printshop.storage.factory import get_storage_driver

from printshop_worker.celery_app import celery_app, get_database
from printshop_worker.config import settings

logger = logging.getLogger(__name__)


@celery_app.task(name=ANALYZE_GCODE_TASK, bind=True)
def analyze_gcode(self, gcode_id: int) -> Dict[str, Any]:
    """Analyze a stored G-code and write its metadata back.

    This task:
    1. Loads the G-code row
    2. Downloads the file from storage
    3. Extracts weight, print time, material and printer name
    4. Updates the row, keeping values the file does not carry

    Args:
        gcode_id: G-code ID

    Returns:
        Dict with status and the metadata now stored on the row
    """
    logger.info(f"Analyzing G-code {gcode_id} (task {self.request.id})")

    db = get_database().session()
    try:
        gcode = db.query(Gcode).filter(Gcode.id == gcode_id).first()
        if not gcode:
            logger.warning(f"G-code {gcode_id} not found, skipping analysis")
            return {"status": "not_found", "gcode_id": gcode_id}

        storage = get_storage_driver(settings)
        try:
            content = asyncio.run(storage.download_file(gcode.nome_file))
        except FileNotFoundError:
            logger.error(f"G-code {gcode_id}: {gcode.nome_file} missing from storage")
            return {"status": "missing_file", "gcode_id": gcode_id}

        try:
            analysis = extract_metadata(gcode.nome_file, content)
        except GcodeAnalysisError as e:
            logger.error(f"G-code {gcode_id} could not be analyzed: {e}")
            return {"status": "failed", "gcode_id": gcode_id, "error": str(e)}

        apply_analysis(db, gcode, analysis)

        result = {
            "status": "empty" if analysis.is_empty else "completed",
            "gcode_id": gcode_id,
            "metadata": analysis_summary(gcode),
        }
        logger.info(f"G-code {gcode_id} analysis {result['status']}: {result['metadata']}")
        return result

    except Exception as e:
        db.rollback()
        logger.error(f"G-code {gcode_id} analysis failed: {e}", exc_info=True)
        raise
    finally:
        db.close()
