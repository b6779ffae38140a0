"""
Model save/load.

An artifact is a ZIP archive (stored, uncompressed) holding:

    configuration.json   {"format": "boundlearn", "format_version": 1,
                          "network": Network.get_config()}
    coefficients.bin     one tensor block per parameter, in network order
    updater.bin          optional; updater state arrays named "<param>/<slot>"

Tensor block file layout, all integers little-endian:

    magic b"BLTS" | version u16 | block count u32
    per block:
        name length u16 | name (utf-8)
        dtype code u8 (1=float16, 2=float32, 3=float64)
        ndim u8 | shape u32 * ndim
        payload byte count u64 | payload (C order, little-endian)

Loading rebuilds the network from the configuration, allocates parameters
with the configured shapes, keeps the saved constraint bindings as they are
and only then copies the values in. Any header, name, shape or size mismatch
raises PersistenceCorruptionError, as does a block whose dtype differs from
the active storage dtype (float16 blocks from compact saves excepted).
"""
import io
import json
import logging
import struct
import zipfile

import numpy as np

import BoundLearn.core.backend.backend as backend
from BoundLearn.core.errors import PersistenceCorruptionError

logger = logging.getLogger(__name__)

FORMAT_NAME = "boundlearn"
FORMAT_VERSION = 1

CONFIGURATION_ENTRY = "configuration.json"
COEFFICIENTS_ENTRY = "coefficients.bin"
UPDATER_ENTRY = "updater.bin"

BLOCK_MAGIC = b"BLTS"
BLOCK_VERSION = 1

_FILE_HEADER = struct.Struct("<4sHI")
_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")

DTYPE_CODES = {
    np.dtype(np.float16): 1,
    np.dtype(np.float32): 2,
    np.dtype(np.float64): 3,
}
CODE_DTYPES = {code: dt for dt, code in DTYPE_CODES.items()}


# ============================================================================
# Tensor blocks
# ============================================================================

def encode_blocks(named_arrays, dtype=None):
    """
    Encode (name, array) pairs into the block format.

    Args:
        named_arrays: Iterable of (str, array). Arrays may live on the GPU.
        dtype: Optional storage dtype for every block (e.g. float16).

    Returns:
        bytes
    """
    named_arrays = list(named_arrays)
    buf = io.BytesIO()
    buf.write(_FILE_HEADER.pack(BLOCK_MAGIC, BLOCK_VERSION, len(named_arrays)))
    for name, arr in named_arrays:
        arr = np.asarray(backend.to_numpy(arr))
        if dtype is not None:
            arr = arr.astype(dtype)
        if arr.dtype not in DTYPE_CODES:
            raise TypeError(f"Cannot store '{name}' with dtype {arr.dtype}")
        name_bytes = name.encode("utf-8")
        payload = np.ascontiguousarray(arr, dtype=arr.dtype.newbyteorder("<")).tobytes(order="C")

        buf.write(_U16.pack(len(name_bytes)))
        buf.write(name_bytes)
        buf.write(_U8.pack(DTYPE_CODES[arr.dtype]))
        buf.write(_U8.pack(arr.ndim))
        for d in arr.shape:
            buf.write(_U32.pack(d))
        buf.write(_U64.pack(len(payload)))
        buf.write(payload)
    return buf.getvalue()


class _Reader:
    def __init__(self, data, entry):
        self.data = data
        self.pos = 0
        self.entry = entry

    def take(self, n, what):
        end = self.pos + n
        if end > len(self.data):
            raise PersistenceCorruptionError(
                f"{self.entry}: truncated while reading {what} "
                f"(need {n} bytes at offset {self.pos}, file has {len(self.data)})"
            )
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def unpack(self, fmt, what):
        return fmt.unpack(self.take(fmt.size, what))


def decode_blocks(data, entry=COEFFICIENTS_ENTRY):
    """Decode block-format bytes into a list of (name, numpy array)."""
    reader = _Reader(data, entry)
    magic, version, count = reader.unpack(_FILE_HEADER, "header")
    if magic != BLOCK_MAGIC:
        raise PersistenceCorruptionError(f"{entry}: bad magic {magic!r}, expected {BLOCK_MAGIC!r}")
    if version != BLOCK_VERSION:
        raise PersistenceCorruptionError(f"{entry}: unsupported block version {version}")

    blocks = []
    for i in range(count):
        (name_len,) = reader.unpack(_U16, f"name length of block {i}")
        try:
            name = reader.take(name_len, f"name of block {i}").decode("utf-8")
        except UnicodeDecodeError as e:
            raise PersistenceCorruptionError(f"{entry}: block {i} name is not valid utf-8") from e
        (code,) = reader.unpack(_U8, f"dtype of '{name}'")
        if code not in CODE_DTYPES:
            raise PersistenceCorruptionError(f"{entry}: '{name}' has unknown dtype code {code}")
        dtype = CODE_DTYPES[code].newbyteorder("<")
        (ndim,) = reader.unpack(_U8, f"rank of '{name}'")
        shape = tuple(reader.unpack(_U32, f"shape of '{name}'")[0] for _ in range(ndim))
        (nbytes,) = reader.unpack(_U64, f"payload size of '{name}'")

        expected = int(np.prod(shape, dtype=np.int64)) * dtype.itemsize
        if nbytes != expected:
            raise PersistenceCorruptionError(
                f"{entry}: '{name}' declares {nbytes} payload bytes, shape {shape} needs {expected}"
            )
        payload = reader.take(nbytes, f"payload of '{name}'")
        if nbytes:
            arr = np.frombuffer(payload, dtype=dtype).reshape(shape).astype(CODE_DTYPES[code])
        else:
            arr = np.zeros(shape, dtype=CODE_DTYPES[code])
        blocks.append((name, arr))

    if reader.pos != len(data):
        raise PersistenceCorruptionError(
            f"{entry}: {len(data) - reader.pos} trailing bytes after {count} blocks"
        )
    return blocks


# ============================================================================
# Save
# ============================================================================

def _updater_arrays(network):
    state = network.updater.state_dict().get("state", {})
    names = set(network.param_names())
    out = []
    for param_name in network.param_names():
        slots = state.get(param_name)
        if not slots:
            continue
        for slot, arr in slots.items():
            out.append((f"{param_name}/{slot}", arr))
    unknown = [k for k in state if k not in names]
    if unknown:
        logger.warning("Skipping updater state for unknown parameters: %s", unknown)
    return out


def save_model(network, sink, save_updater=True, compact=None):
    """
    Write `network` to `sink` (a path or a writable binary file object).

    Args:
        network (Network): An initialized network.
        sink: Path or binary file object.
        save_updater (bool): Also store the updater's per-parameter state.
        compact (bool, optional): Store float16 values (lossy). Defaults to
            the `compact_storage` config key.
    """
    network._check_initialized()
    compact = backend.COMPACT_STORAGE if compact is None else bool(compact)
    if compact:
        logger.warning("Saving with compact=True: parameters are stored as float16 and will not round-trip exactly")

    configuration = {
        "format": FORMAT_NAME,
        "format_version": FORMAT_VERSION,
        "network": network.get_config(),
    }
    store_dtype = np.float16 if compact else None
    coefficients = encode_blocks(network.param_table().items(), dtype=store_dtype)
    updater_arrays = _updater_arrays(network) if save_updater else []

    with zipfile.ZipFile(sink, "w", compression=zipfile.ZIP_STORED) as zf:
        zf.writestr(CONFIGURATION_ENTRY, json.dumps(configuration, indent=2))
        zf.writestr(COEFFICIENTS_ENTRY, coefficients)
        if updater_arrays:
            zf.writestr(UPDATER_ENTRY, encode_blocks(updater_arrays, dtype=store_dtype))

    logger.debug("Saved network: %d parameters in %d tensors, %d updater arrays",
                 network.num_params(), len(network.param_names()), len(updater_arrays))
    return sink


# ============================================================================
# Load
# ============================================================================

def _read_entry(zf, name, required=True):
    try:
        return zf.read(name)
    except KeyError:
        if required:
            raise PersistenceCorruptionError(f"Artifact is missing '{name}'") from None
        return None


def _decode_configuration(raw):
    try:
        configuration = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise PersistenceCorruptionError(f"{CONFIGURATION_ENTRY} is not valid JSON: {e}") from e
    if not isinstance(configuration, dict) or configuration.get("format") != FORMAT_NAME:
        raise PersistenceCorruptionError(f"{CONFIGURATION_ENTRY} is not a {FORMAT_NAME} configuration")
    if configuration.get("format_version") != FORMAT_VERSION:
        raise PersistenceCorruptionError(
            f"Unsupported format_version {configuration.get('format_version')!r}, expected {FORMAT_VERSION}"
        )
    if "network" not in configuration:
        raise PersistenceCorruptionError(f"{CONFIGURATION_ENTRY} has no 'network' section")
    return configuration["network"]


def _check_storage_dtype(entry, name, arr):
    # float16 blocks only come from compact saves, which warned on write
    target = np.dtype(backend.DTYPE)
    if arr.dtype != target and arr.dtype != np.float16:
        raise PersistenceCorruptionError(
            f"{entry}: '{name}' was saved as {arr.dtype}, storage dtype is {target}; "
            f"call backend.set_dtype(\"{arr.dtype}\") before loading"
        )


def _load_coefficients(network, blocks):
    expected = [(name, p.shape) for name, p in network.named_parameters()]
    names = [name for name, _ in blocks]
    if names != [name for name, _ in expected]:
        raise PersistenceCorruptionError(
            f"{COEFFICIENTS_ENTRY}: parameter names {names} do not match the configuration {[n for n, _ in expected]}"
        )
    for (name, shape), (_, arr) in zip(expected, blocks):
        if tuple(arr.shape) != tuple(shape):
            raise PersistenceCorruptionError(
                f"{COEFFICIENTS_ENTRY}: '{name}' has shape {arr.shape}, configuration needs {shape}"
            )
        _check_storage_dtype(COEFFICIENTS_ENTRY, name, arr)
    for name, arr in blocks:
        network.set_param(name, backend.xp.asarray(arr))


def _load_updater_state(network, blocks):
    xp = backend.xp
    shapes = {name: p.shape for name, p in network.named_parameters()}
    state = {}
    for block_name, arr in blocks:
        param_name, sep, slot = block_name.rpartition("/")
        if not sep or param_name not in shapes:
            raise PersistenceCorruptionError(f"{UPDATER_ENTRY}: unknown state entry '{block_name}'")
        if tuple(arr.shape) != tuple(shapes[param_name]):
            raise PersistenceCorruptionError(
                f"{UPDATER_ENTRY}: '{block_name}' has shape {arr.shape}, parameter needs {shapes[param_name]}"
            )
        _check_storage_dtype(UPDATER_ENTRY, block_name, arr)
        state.setdefault(param_name, {})[slot] = xp.asarray(arr, dtype=backend.DTYPE)
    network.updater.load_state_dict({"state": state})


def load_model(source, load_updater=True):
    """
    Read a network written by `save_model`.

    Args:
        source: Path or readable binary file object.
        load_updater (bool): Restore the updater state when present.

    Returns:
        Network: Initialized, with parameters and bindings as saved.

    Raises:
        PersistenceCorruptionError: The artifact is malformed.
        ConfigurationError: The configuration names unknown types.
    """
    from BoundLearn.nn.network import Network

    try:
        with zipfile.ZipFile(source, "r") as zf:
            raw_config = _read_entry(zf, CONFIGURATION_ENTRY)
            raw_coefficients = _read_entry(zf, COEFFICIENTS_ENTRY)
            raw_updater = _read_entry(zf, UPDATER_ENTRY, required=False) if load_updater else None
    except zipfile.BadZipFile as e:
        raise PersistenceCorruptionError(f"Not a valid model archive: {e}") from e

    network = Network.from_config(_decode_configuration(raw_config))
    network.init()

    _load_coefficients(network, decode_blocks(raw_coefficients, COEFFICIENTS_ENTRY))
    if raw_updater is not None:
        _load_updater_state(network, decode_blocks(raw_updater, UPDATER_ENTRY))

    logger.debug("Loaded network: %d layers, %d parameters", len(network.layers), network.num_params())
    return network
