"""Host command source -- restart, reboot, display sleep/wake.

Runs configured shell command lines on the machine hosting the relay.
Commands are fire-and-forget: stdout, stderr and any failure are
logged, nothing is reported back to the dashboard.

Config example (in homeboard.yaml):
    commands:
      restart: "sudo systemctl restart homeboard"
      reboot: "sudo reboot"
      sleep: "export DISPLAY=:0; sleep 1; xset -display :0.0 s activate"
      wakeup: "export DISPLAY=:0; xset -display :0.0 dpms force on"
      motion_wake: "export DISPLAY=:0 && xdotool mousemove 1 2"
"""

import logging
import subprocess
from typing import Dict, Optional

from core.data_source import COMMAND, Source
from core.registry import register_source

logger = logging.getLogger(__name__)


@register_source("host")
class HostSource(Source):
    """Executes named shell commands from configuration."""

    CAPABILITIES = (COMMAND,)

    def __init__(self, source_id: str, bus, config: Dict):
        super().__init__(source_id, bus, config)
        self.timeout = self.config.get("timeout", 60)

    def run(self, name: str) -> Optional[int]:
        """Run the command configured under ``name``.

        Returns:
            The exit status, or None if nothing was run.
        """
        command = self.config.get(name)
        if not command:
            logger.info("No host command configured for %s", name)
            return None

        logger.info("Running host command %s", name)
        try:
            result = subprocess.run(
                command, shell=True, capture_output=True, text=True,
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, OSError) as exc:
            logger.warning("Host command %s error: %s", name, exc)
            return None

        if result.returncode != 0:
            logger.warning("Host command %s exited with %d", name, result.returncode)
        if result.stderr:
            logger.warning("Host command %s stderr: %s", name, result.stderr.strip())
        if result.stdout:
            logger.info("Host command %s stdout: %s", name, result.stdout.strip())
        return result.returncode
