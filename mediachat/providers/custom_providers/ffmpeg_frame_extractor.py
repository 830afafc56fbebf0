import asyncio
from pathlib import Path
from typing import Any, Dict, List, Union

from loguru import logger

from ..base import FrameExtractor


def snapshot_filename(timestamp: float) -> str:
    return f"snapshot-{int(timestamp)}.jpg"


class FFmpegFrameExtractor(FrameExtractor):
    """Extracts still frames by running one ``ffmpeg`` process per timestamp."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.ffmpeg_path = config.get("ffmpeg_path", "ffmpeg")
        self.frame_timeout = config.get("frame_timeout", 60)

    def build_command(self, media_url: str, timestamp: float, output_path: Union[str, Path]) -> List[str]:
        command = [self.ffmpeg_path, "-y", "-loglevel", "error"]

        if media_url.startswith(("http://", "https://")):
            # remote streams need a deeper probe before the first keyframe is found
            command += ["-analyzeduration", "10000000", "-probesize", "10000000"]
        if ".m3u8" in media_url:
            command += ["-protocol_whitelist", "file,http,https,tcp,tls"]

        command += [
            "-ss", str(timestamp),
            "-i", media_url,
            "-frames", "1",
            "-q:v", "2",
            str(output_path),
        ]
        return command

    async def _run(self, command: List[str]) -> None:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
        try:
            _, err = await asyncio.wait_for(process.communicate(), timeout=self.frame_timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise

        if process.returncode != 0:
            raise RuntimeError(f"ffmpeg exited with {process.returncode}: {err.decode(errors='replace').strip()}")

    async def extract_frames(
        self,
        media_url: str,
        timestamps: List[float],
        output_dir: Union[str, Path],
    ) -> Dict[float, str]:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        frames: Dict[float, str] = {}
        for timestamp in timestamps:
            output_path = output_dir / snapshot_filename(timestamp)
            try:
                await self._run(self.build_command(media_url, timestamp, output_path))
            except (OSError, RuntimeError, asyncio.TimeoutError) as e:
                logger.warning(f"Failed to extract frame at {timestamp}s: {e}")
                continue

            if output_path.exists():
                frames[timestamp] = str(output_path)
            else:
                logger.warning(f"ffmpeg produced no frame at {timestamp}s")

        logger.info(f"Extracted {len(frames)}/{len(timestamps)} frames")
        return frames
