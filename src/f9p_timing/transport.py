"""
Ways of getting one configuration command to the receiver.

UbxtoolTransport goes through gpsd's ubxtool (the receiver stays owned by
gpsd). SerialTransport opens the port itself and uses pyubx2 to build the
frames, for bench setups without gpsd. Both report results as
CommandResult(returncode, output) and never raise on a device-side failure.
"""
import logging
import subprocess
from typing import List, NamedTuple

import serial
from pyubx2 import (
    POLL,
    SET,
    TXN_NONE,
    UBX_PROTOCOL,
    UBXMessage,
    UBXMessageError,
    UBXParseError,
    UBXReader,
    UBXTypeError,
)

log = logging.getLogger(__name__)

LAYER_RAM = 1
LAYER_BBR = 2
LAYER_FLASH = 4
LAYERS_ALL = LAYER_RAM | LAYER_BBR | LAYER_FLASH
LAYERS_PERSIST = LAYER_BBR | LAYER_FLASH

# UBX-CFG-CFG: clear nothing, save all sections, load nothing
CFG_CFG_SAVE_ALL = b"\x00\x00\x00\x00" + b"\xff\xff\x00\x00" + b"\x00\x00\x00\x00"
DEVICE_BBR_FLASH = b"\x03"
DEVICE_ALL = b"\x17"  # BBR, FLASH, EEPROM, SPI flash on older receivers


class CommandResult(NamedTuple):
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_message(parsed) -> str:
    """Render a parsed pyubx2 message as ubxtool prints it: a header, then one field per line."""
    lines = [f"UBX-{parsed.identity}:"]
    for name, value in vars(parsed).items():
        if not name.startswith("_"):
            lines.append(f"  {name} {value}")
    return "\n".join(lines) + "\n"


class Transport:
    """Interface shared by all transports."""

    name = "transport"

    def probe(self) -> CommandResult:
        return self.poll("MON-VER")

    def set_value(self, key, value, layers=LAYERS_ALL) -> CommandResult:
        raise NotImplementedError

    def get_value(self, key) -> CommandResult:
        raise NotImplementedError

    def poll(self, message) -> CommandResult:
        raise NotImplementedError

    def save(self) -> CommandResult:
        raise NotImplementedError

    def legacy_save(self) -> CommandResult:
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class UbxtoolTransport(Transport):
    name = "ubxtool"

    def __init__(self, protocol_version="27.50", wait_s=0.5, executable="ubxtool", timeout=30.0):
        self.protocol_version = protocol_version
        self.wait_s = wait_s
        self.executable = executable
        self.timeout = timeout

    def base_argv(self) -> List[str]:
        return [self.executable, "-P", str(self.protocol_version), "-w", str(self.wait_s), "-v", "0"]

    def run(self, *args) -> CommandResult:
        argv = self.base_argv() + list(args)
        log.debug("exec: %s", " ".join(argv))
        try:
            proc = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                universal_newlines=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(127, f"{self.executable} not found: {e}")
        except subprocess.TimeoutExpired:
            return CommandResult(124, f"{self.executable} timed out after {self.timeout}s")
        return CommandResult(proc.returncode, proc.stdout or "")

    def set_value(self, key, value, layers=LAYERS_ALL):
        return self.run("-z", f"{key},{value},{layers}")

    def get_value(self, key):
        return self.run("-g", key)

    def poll(self, message):
        return self.run("-p", message)

    def save(self):
        return self.run("-p", "SAVE")

    def legacy_save(self):
        return self.run("-c", "06,09,00,FF,FF,00,00")


class SerialTransport(Transport):
    name = "serial"

    def __init__(self, port, baud=38400, timeout=1.0, stream=None, max_reads=50):
        self.port = port
        self.baud = baud
        self.max_reads = max_reads
        self._stream = stream if stream is not None else serial.Serial(port, baud, timeout=timeout)
        self._reader = UBXReader(self._stream, protfilter=UBX_PROTOCOL)

    def close(self):
        self._stream.close()

    def _send(self, msg: UBXMessage):
        log.debug("send: %s", msg)
        self._stream.write(msg.serialize())
        self._stream.flush()

    def _await(self, match):
        """Read frames until match(parsed) returns a result or the port goes quiet."""
        for _ in range(self.max_reads):
            try:
                _, parsed = self._reader.read()
            except (UBXParseError, UBXMessageError, UBXTypeError) as e:
                log.debug("discarding unparseable frame: %s", e)
                continue
            if parsed is None:
                break
            result = match(parsed)
            if result is not None:
                return result
        return CommandResult(1, "timeout: no reply from receiver")

    def _await_ack(self, cls_id, msg_id):
        def match(parsed):
            if parsed.identity not in ("ACK-ACK", "ACK-NAK"):
                return None
            if parsed.clsID != cls_id or parsed.msgID != msg_id:
                return None
            return CommandResult(0, f"UBX-{parsed.identity}")
        return self._await(match)

    def _await_identity(self, identity):
        def match(parsed):
            if parsed.identity == identity:
                return CommandResult(0, format_message(parsed))
            if parsed.identity == "ACK-NAK":
                return CommandResult(0, "UBX-ACK-NAK")
            return None
        return self._await(match)

    def set_value(self, key, value, layers=LAYERS_ALL):
        name = key.replace("-", "_")
        try:
            msg = UBXMessage.config_set(layers, TXN_NONE, [(name, int(value))])
        except (UBXMessageError, UBXTypeError) as e:
            return CommandResult(1, f"item {key} unknown: {e}")
        self._send(msg)
        return self._await_ack(0x06, 0x8A)

    def get_value(self, key):
        name = key.replace("-", "_")
        try:
            msg = UBXMessage.config_poll(0, 0, [name])
        except (UBXMessageError, UBXTypeError) as e:
            return CommandResult(1, f"item {key} unknown: {e}")
        self._send(msg)
        return self._await_identity("CFG-VALGET")

    def poll(self, message):
        try:
            msg = UBXMessage(message.split("-")[0], message, POLL)
        except (UBXMessageError, UBXTypeError, KeyError) as e:
            return CommandResult(1, f"message {message} not found: {e}")
        self._send(msg)
        return self._await_identity(message)

    def save(self):
        self._send(UBXMessage("CFG", "CFG-CFG", SET, payload=CFG_CFG_SAVE_ALL + DEVICE_BBR_FLASH))
        return self._await_ack(0x06, 0x09)

    def legacy_save(self):
        self._send(UBXMessage("CFG", "CFG-CFG", SET, payload=CFG_CFG_SAVE_ALL + DEVICE_ALL))
        return self._await_ack(0x06, 0x09)

