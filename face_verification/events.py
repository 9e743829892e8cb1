"""
Event sending module.

Sends new attendance records to backend API.
"""

import requests

from .config import Config
from .logging_config import get_logger
from .models import AttendanceRecord

logger = get_logger(__name__)


def send_attendance(record: AttendanceRecord, config: Config) -> bool:
    """
    Send attendance record to backend.

    Args:
        record: New attendance record
        config: Service configuration

    Returns:
        True if record sent successfully
    """
    if not config.backend_url:
        return False

    url = f'{config.backend_url}/api/attendance'

    try:
        logger.info(f'📤 Sending attendance for {record.person_name} ({record.person_id})')

        response = requests.post(url, json=record.to_dict(), timeout=5)

        if response.ok:
            logger.info('✅ Attendance sent successfully')
            return True
        else:
            logger.error(f'❌ Failed to send attendance: {response.status_code} {response.text}')
            return False

    except requests.exceptions.Timeout:
        logger.error(f'❌ Timeout sending attendance to {url}')
        return False
    except requests.exceptions.ConnectionError:
        logger.error(f'❌ Connection error sending attendance to {url}')
        return False
    except Exception as e:
        logger.error(f'❌ Error sending attendance: {e}')
        return False
