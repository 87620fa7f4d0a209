"""
==============================================================================
Scanner WebSocket Module
==============================================================================

Live product identification from frames streamed by a client camera.

Protocol:
---------
1. Client connects to /ws/scan
2. Client sends frames: {"type": "frame", "frame": "<base64 jpeg/png>"}
3. Server sends exactly one result message and closes:
   {"type": "result", "state": "succeeded", "record": {...}}
   {"type": "result", "state": "failed", "error": {...}}
   {"type": "result", "state": "cancelled"}
4. Client may send {"type": "stop"} to cancel; disconnecting cancels too

==============================================================================
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from productscan.scanner import PushFrameSource, ScanOutcome, ScanSession
from productscan.schemas import ScanResultResponse
from productscan.services import ScanService, get_scan_service


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter()


class ScannerWebSocketHandler:
    """
    Handler for live scan WebSocket connections.

    Manages the lifecycle of one scan session:
    - Frame intake into a PushFrameSource
    - Session scheduling through the scan service runner
    - Single result delivery
    """

    def __init__(self, websocket: WebSocket, scan_service: ScanService):
        self._websocket = websocket
        self._scan_service = scan_service
        self._source = PushFrameSource()
        self._session: ScanSession = scan_service.create_session(self._source)
        self._frame_count = 0
        self._disconnected = False

    async def receive_frames(self) -> None:
        """Feed client frames into the session until stop or disconnect."""
        try:
            while not self._session.done:
                try:
                    data = await self._websocket.receive_json()
                except (ValueError, KeyError, TypeError):
                    # Undecodable text or a binary message
                    logger.warning("Ignoring non-JSON message")
                    continue

                kind = data.get("type") if isinstance(data, dict) else None

                if kind == "frame":
                    self._frame_count += 1
                    if not self._source.push_encoded(data.get("frame", "")):
                        logger.debug(f"Frame {self._frame_count} could not be decoded")

                elif kind == "stop":
                    logger.info("🛑 Client requested stop")
                    self._session.cancel()
                    break

        except WebSocketDisconnect:
            logger.info("📱 Client disconnected")
            self._disconnected = True

        except Exception as e:
            logger.error(f"❌ Scanner WebSocket receive error: {e!r}")

        finally:
            # No more frames will arrive
            if not self._session.done:
                self._session.cancel()
            self._source.mark_lost()

    async def send_result(self, outcome: ScanOutcome) -> None:
        """Send the terminal outcome to the client."""
        result = ScanResultResponse.from_outcome(outcome)
        await self._websocket.send_json({
            "type": "result",
            **result.model_dump(mode="json")
        })

    async def run(self) -> None:
        """Main handler loop."""
        await self._websocket.accept()
        logger.info(f"📱 Scanner WebSocket connected (session {self._session.session_id})")

        receiver = asyncio.create_task(self.receive_frames())

        try:
            outcome = await self._scan_service.run_session(self._session)
            logger.info(
                f"📊 Session {self._session.session_id}: {outcome.state.value} "
                f"after {self._frame_count} frames"
            )

            if not self._disconnected:
                try:
                    await self.send_result(outcome)
                except (WebSocketDisconnect, RuntimeError) as e:
                    logger.debug(f"Result not delivered: {e!r}")

        finally:
            receiver.cancel()
            if not self._session.done:
                self._session.cancel()
            if not self._disconnected:
                try:
                    await self._websocket.close()
                except RuntimeError as e:
                    logger.debug(f"Close after disconnect: {e!r}")
            logger.info("✅ Scanner WebSocket closed")


@router.websocket("/ws/scan")
async def websocket_scan(
    websocket: WebSocket,
    scan_service: ScanService = Depends(get_scan_service)
):
    """Live product identification via WebSocket."""
    handler = ScannerWebSocketHandler(websocket, scan_service)
    await handler.run()
