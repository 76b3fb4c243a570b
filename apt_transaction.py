'''
    APT Request/Response Transactions
    Oct 2026 | Version 1

    The KDC101 has no "reply ready" signal, so every request is
    write -> fixed settle delay -> blocking read. One exchange at a time;
    callers sharing a controller between threads must serialize access.
'''
import logging
import time

from apt_constants import REPLY_IDS
from apt_messages import APTProtocol, DataMessage, HeaderMessage

logger = logging.getLogger(__name__)


class TransactionEngine():
    HEADER_SETTLE_DELAY = 0.015  # s, before reading a header-only reply
    DATA_SETTLE_DELAY = 0.050    # s, before reading a data reply

    def __init__(self, transport, header_delay=None, data_delay=None):
        self.transport = transport
        self.header_delay = (self.HEADER_SETTLE_DELAY if header_delay is None
                             else header_delay)
        self.data_delay = (self.DATA_SETTLE_DELAY if data_delay is None
                           else data_delay)

    def write_header_only(self, msg: HeaderMessage) -> None:
        '''Build and send a header-only message (fire-and-forget).'''
        raw = APTProtocol.build_header(msg)
        logger.debug("TX %04X: %s", msg.msg_id, raw.hex())
        self.transport.write(raw)

    def write_data(self, msg: DataMessage) -> None:
        '''Build and send a data message (fire-and-forget).'''
        raw = APTProtocol.build_data(msg)
        logger.debug("TX %04X: %s", msg.msg_id, raw.hex())
        self.transport.write(raw)

    def read_header_only(self) -> HeaderMessage:
        reply = APTProtocol.read_header(self.transport)
        logger.debug("RX %04X: p1=%02X p2=%02X", reply.msg_id,
                     reply.param1, reply.param2)
        return reply

    def read_data(self) -> DataMessage:
        reply = APTProtocol.read_data(self.transport)
        logger.debug("RX %04X: %s", reply.msg_id, reply.data.hex())
        return reply

    def request_header_only(self, msg: HeaderMessage) -> HeaderMessage:
        """Send a header-only request and read a header-only reply."""
        self.write_header_only(msg)
        time.sleep(self.header_delay)
        reply = self.read_header_only()
        self._check_reply(msg, reply)
        return reply

    def request_data(self, msg: HeaderMessage) -> DataMessage:
        """Send a header-only request and read a data reply."""
        self.write_header_only(msg)
        time.sleep(self.data_delay)
        reply = self.read_data()
        self._check_reply(msg, reply)
        return reply

    @staticmethod
    def _check_reply(request, reply):
        expected = REPLY_IDS.get(request.msg_id)
        if expected is not None and reply.msg_id != expected:
            logger.warning("Expected reply %04X to %04X, got %04X",
                           expected, request.msg_id, reply.msg_id)
