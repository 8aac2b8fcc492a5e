"""
Audio extraction through the yt-dlp command line.

Each extraction runs `python -m yt_dlp` as a child process: yt-dlp
downloads the chosen audio stream and lets FFmpeg convert it to MP3.
Running it as a subprocess keeps the event loop free while FFmpeg works
and isolates crashes to the one item being processed.

Requirements:
    FFmpeg must be installed and on PATH.
"""

import asyncio
import sys
from pathlib import Path

from ytplaylist.core.exceptions import ExtractionError, RemoteAccessError
from ytplaylist.core.logger import get_logger
from ytplaylist.youtube.client import classify_status

logger = get_logger(__name__)


AUDIO_FORMAT = "mp3"


class AudioExtractor:
    """
    Produces an MP3 file from a YouTube video.

    Attributes:
        _cookie_file: Optional cookies.txt passed to yt-dlp.
        _executable: Python interpreter used to run yt-dlp.
    """

    def __init__(self, cookie_file: Path | None = None, executable: str = sys.executable) -> None:
        self._cookie_file = cookie_file
        self._executable = executable

    def build_command(self, source_url: str, target: Path, format_id: str) -> list[str]:
        """
        Build the yt-dlp invocation writing `<target stem>.mp3` next to target.

        The output template keeps yt-dlp's own extension handling; after
        conversion the file is exactly `target`.
        """
        template = str(target.with_suffix(".%(ext)s"))
        command = [
            self._executable, "-m", "yt_dlp",
            "--quiet",
            "--no-warnings",
            "--no-playlist",
            "--no-progress",
            "-f", format_id,
            "-x",
            "--audio-format", AUDIO_FORMAT,
            "--audio-quality", "0",
            "-o", template,
        ]
        if self._cookie_file is not None:
            command += ["--cookies", str(self._cookie_file)]
        command.append(source_url)
        return command

    async def extract(self, source_url: str, target: Path, format_id: str) -> Path:
        """
        Download and convert audio to `target` (which must end in .mp3).

        Returns:
            The path of the produced file.

        Raises:
            RemoteAccessError: If YouTube answered the download with 403/429.
            ExtractionError: If yt-dlp exits with a nonzero status for any
                             other reason, or no file was produced.
        """
        command = self.build_command(source_url, target, format_id)
        logger.debug(f"Running: {' '.join(command)}")

        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()

        error_text = stderr.decode("utf-8", errors="replace").strip() if stderr else ""
        lines = error_text.splitlines()
        last_line = lines[-1] if lines else ""

        if process.returncode != 0:
            refused = RemoteAccessError(
                f"yt-dlp download refused: {last_line}",
                details={"url": source_url, "stderr": last_line},
                status_code=classify_status(error_text),
            )
            # 403/429 go back to the job's retry loop
            if refused.is_rate_limited:
                raise refused
            raise ExtractionError(
                f"yt-dlp exited with code {process.returncode}",
                details={"url": source_url, "stderr": last_line},
                exit_code=process.returncode,
            )

        if not target.exists():
            raise ExtractionError(
                f"yt-dlp finished but {target.name} was not created",
                details={"url": source_url, "stderr": last_line},
                exit_code=process.returncode,
            )
        return target
