"""
Pre-start Checks

Ordered validations run before a mission may start. The first failing
check decides which PreconditionError is reported.
"""

from enum import Enum, auto
from dataclasses import dataclass, field
from typing import List, Optional, TYPE_CHECKING
import logging

from ..errors import PreconditionError

if TYPE_CHECKING:
    from ..config import VehicleConfig
    from .vehicle import Vehicle

logger = logging.getLogger(__name__)


class CheckResult(Enum):
    """Result of a single check"""
    PASS = auto()
    FAIL = auto()


@dataclass
class CheckStatus:
    """Status of a single check"""
    name: str
    result: CheckResult = CheckResult.PASS
    message: str = ""
    code: Optional[str] = None


@dataclass
class PreflightResult:
    """Complete check result"""
    passed: bool
    checks: List[CheckStatus] = field(default_factory=list)

    @property
    def error(self) -> Optional[PreconditionError]:
        """Error for the first failed check, None when all passed"""
        for check in self.checks:
            if check.result == CheckResult.FAIL:
                return PreconditionError(check.code, f"{check.name}: {check.message}")
        return None


class PreflightChecker:
    """
    Runs the start preconditions in order:
    - GPS level high enough to record a home point
    - Vehicle not landing
    - Vehicle not returning home
    """

    def __init__(self, config: 'VehicleConfig'):
        self.config = config

    def run_checks(self, vehicle: 'Vehicle') -> PreflightResult:
        """
        Run all checks, stopping at the first failure

        Returns:
            PreflightResult with pass/fail status and details
        """
        checks: List[CheckStatus] = []
        for check in (self._check_gps, self._check_landing, self._check_going_home):
            status = check(vehicle)
            checks.append(status)
            if status.result == CheckResult.FAIL:
                break

        passed = all(c.result == CheckResult.PASS for c in checks)
        if passed:
            logger.info("Start checks PASSED")
        else:
            logger.warning(f"Start checks FAILED: {checks[-1].name}: {checks[-1].message}")

        return PreflightResult(passed=passed, checks=checks)

    def _check_gps(self, vehicle: 'Vehicle') -> CheckStatus:
        check = CheckStatus(name="GPS Level")
        level = int(vehicle.read_gps_level())
        if level < self.config.home_point_gps_level:
            check.result = CheckResult.FAIL
            check.code = PreconditionError.GPS_SIGNAL_WEAK
            check.message = f"level {level} < {self.config.home_point_gps_level}"
        else:
            check.message = f"level {level}"
        return check

    def _check_landing(self, vehicle: 'Vehicle') -> CheckStatus:
        check = CheckStatus(name="Landing")
        if vehicle.read_flight_status().landing:
            check.result = CheckResult.FAIL
            check.code = PreconditionError.AIRCRAFT_LANDING
            check.message = "vehicle is landing"
        return check

    def _check_going_home(self, vehicle: 'Vehicle') -> CheckStatus:
        check = CheckStatus(name="Going Home")
        if vehicle.read_flight_status().going_home:
            check.result = CheckResult.FAIL
            check.code = PreconditionError.AIRCRAFT_GOING_HOME
            check.message = "vehicle is returning home"
        return check
