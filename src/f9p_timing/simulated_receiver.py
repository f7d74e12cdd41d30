# In-memory receiver used by --dry-run and the tests.
# Acknowledges everything unless told otherwise.
from typing import Dict, List, Optional, Set, Tuple

from f9p_timing.transport import LAYERS_ALL, CommandResult, Transport

ACK = CommandResult(0, "UBX-ACK-ACK")
NAK = CommandResult(0, "UBX-ACK-NAK")


class SimulatedReceiver(Transport):
    name = "sim"

    def __init__(
        self,
        reachable: bool = True,
        unknown_keys: Optional[Set[str]] = None,
        scripted: Optional[Dict[str, List[CommandResult]]] = None,
    ):
        self.reachable = reachable
        self.unknown_keys = set(unknown_keys or ())
        # per key/message replies, consumed in order before falling back to ACK
        self.scripted = {k: list(v) for k, v in (scripted or {}).items()}
        self.calls: List[Tuple] = []
        self.values: Dict[str, int] = {}
        self.closed = False

    def _reply(self, key) -> CommandResult:
        queue = self.scripted.get(key)
        if queue:
            return queue.pop(0)
        if key in self.unknown_keys:
            return CommandResult(1, f"item {key} unknown")
        return ACK

    def set_value(self, key, value, layers=LAYERS_ALL):
        self.calls.append(("set", key, value, layers))
        result = self._reply(key)
        if result.ok and "NAK" not in result.output:
            self.values[key] = value
        return result

    def get_value(self, key):
        self.calls.append(("get", key))
        if key in self.values:
            return CommandResult(0, f"{key}: {self.values[key]}")
        return self._reply(key)

    def poll(self, message):
        self.calls.append(("poll", message))
        if not self.reachable:
            return CommandResult(1, "gpsd: connection refused")
        if message == "CFG-TMODE3" and not self.scripted.get(message):
            return self._tmode3()
        return self._reply(message)

    def _tmode3(self) -> CommandResult:
        v = self.values
        return CommandResult(0, (
            "UBX-CFG-TMODE3:\n"
            f"  mode {v.get('CFG-TMODE-MODE', 0)} lla {v.get('CFG-TMODE-POS_TYPE', 0)}\n"
            f"  ecefXOrLat {v.get('CFG-TMODE-LAT', 0)} ecefYOrLon {v.get('CFG-TMODE-LON', 0)}"
            f" ecefZOrAlt {v.get('CFG-TMODE-HEIGHT', 0)}\n"
            f"  fixedPosAcc {v.get('CFG-TMODE-FIXED_POS_ACC', 0)}\n"
        ))

    def save(self):
        self.calls.append(("save",))
        return self._reply("SAVE")

    def legacy_save(self):
        self.calls.append(("legacy_save",))
        return self._reply("CFG-CFG")

    def close(self):
        self.closed = True

    def keys_written(self) -> List[str]:
        return [c[1] for c in self.calls if c[0] == "set"]
