import pyvisa

BUS_TIMEOUT_MS = 1000       # GPIB T1s


def gpib_resource(address: int, board: int = 0) -> str:
    return f"GPIB{board}::{address}::INSTR"


def visa_list_resources() -> list[str]:
    rm = pyvisa.ResourceManager()
    return list(rm.list_resources())


def open_resource(resource: str, timeout_ms: int = BUS_TIMEOUT_MS):
    rm = pyvisa.ResourceManager()
    inst = rm.open_resource(resource)
    inst.timeout = timeout_ms
    inst.write_termination = "\n"
    # responses are framed by InstrumentLink, not by VISA
    inst.read_termination = None
    return inst
