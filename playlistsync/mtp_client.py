"""
MTP client implementation using ctypes bindings to libmtp.
Provides wrappers for LIBMTP_* functions for folder listing, deletion and upload.
"""
import ctypes
import logging
from ctypes import c_int, c_char_p, c_long, c_uint32, c_uint64, c_void_p, POINTER, Structure, c_uint8, c_uint16
from pathlib import Path
from typing import Callable, List, Optional

from .models import DeviceEntry, FILETYPE_UNKNOWN


# Configure logger
logger = logging.getLogger(__name__)

# Parent id addressing the top level of a storage in LIBMTP_Get_Files_And_Folders
ROOT_FOLDER_ID = 0xFFFFFFFF

# LIBMTP_error_number_t
LIBMTP_ERROR_NONE = 0
LIBMTP_ERROR_NO_DEVICE_ATTACHED = 5

ProgressCallback = Callable[[int, int], None]

# int (*LIBMTP_progressfunc_t)(uint64_t sent, uint64_t total, void const *data)
LIBMTP_progressfunc_t = ctypes.CFUNCTYPE(c_int, c_uint64, c_uint64, c_void_p)


class LIBMTP_devicestorage_struct(Structure):
    pass

# Forward reference for self-referencing structures
LIBMTP_devicestorage_struct._fields_ = [
    ("id", c_uint32),
    ("storage_type", c_uint16),
    ("filesystem_type", c_uint16),
    ("access_capability", c_uint16),
    ("maximum_capacity", c_uint64),
    ("free_space_in_bytes", c_uint64),
    ("free_space_in_objects", c_uint64),
    ("storage_description", c_char_p),
    ("volume_identifier", c_char_p),
    ("next", POINTER(LIBMTP_devicestorage_struct)),
    ("prev", POINTER(LIBMTP_devicestorage_struct)),
]

class LIBMTP_mtpdevice_t(Structure):
    _fields_ = [
        ("object_bitsize", c_uint8),
        ("params",        c_void_p),
        ("usbinfo",       c_void_p),
        ("storage",       POINTER(LIBMTP_devicestorage_struct)),
    ]

# Define libmtp data structures
class LIBMTP_device_entry_struct(Structure):
    _fields_ = [
        ("vendor", c_char_p),
        ("vendor_id", c_uint16),
        ("product", c_char_p),
        ("product_id", c_uint16),
        ("device_flags", c_uint32),
    ]

class LIBMTP_raw_device_struct(Structure):
    _fields_ = [
        ("device_entry", LIBMTP_device_entry_struct),
        ("bus_location", c_uint32),
        ("devnum", c_uint8),
    ]

class LIBMTP_file_struct(Structure):
    pass


LIBMTP_file_struct._fields_ = [
    ("item_id", c_uint32),
    ("parent_id", c_uint32),
    ("storage_id", c_uint32),
    ("filename", c_char_p),
    ("filesize", c_uint64),
    ("modificationdate", c_long),
    ("filetype", c_int),
    ("next", POINTER(LIBMTP_file_struct))
]


class MTPClient:
    """MTP client for interfacing with libmtp.

    One instance is one device session; every device operation of a sync run
    goes through it.
    """

    def __init__(self):
        """Initialize MTP client and load libmtp."""
        self.lib = self._load_libmtp()
        self._setup_function_prototypes()
        self.device = None

        # Initialize libmtp
        self.lib.LIBMTP_Init()

    def _load_libmtp(self):
        """Load libmtp library using ctypes."""
        try:
            # Try different library names (platform dependent)
            for lib_name in ["libmtp.so", "libmtp.so.9", "libmtp.dylib", "mtp.dll"]:
                try:
                    return ctypes.CDLL(lib_name)
                except OSError:
                    continue

            # If we get here, try to load without specifying path (rely on system paths)
            return ctypes.CDLL("libmtp")

        except Exception as e:
            logger.error(f"Failed to load libmtp: {e}")
            raise RuntimeError(f"Failed to load libmtp. Please make sure libmtp is installed: {e}")

    def _setup_function_prototypes(self):
        """Define function prototypes for libmtp."""
        lib = self.lib

        lib.LIBMTP_Init.argtypes = []
        lib.LIBMTP_Init.restype = None

        lib.LIBMTP_Release_Device.argtypes = [POINTER(LIBMTP_mtpdevice_t)]
        lib.LIBMTP_Release_Device.restype = None

        lib.LIBMTP_Detect_Raw_Devices.argtypes = [
            POINTER(POINTER(LIBMTP_raw_device_struct)),
            POINTER(c_int)
        ]
        lib.LIBMTP_Detect_Raw_Devices.restype = c_int

        lib.LIBMTP_Open_Raw_Device_Uncached.argtypes = [POINTER(LIBMTP_raw_device_struct)]
        lib.LIBMTP_Open_Raw_Device_Uncached.restype = POINTER(LIBMTP_mtpdevice_t)

        lib.LIBMTP_Get_Storage.argtypes = [POINTER(LIBMTP_mtpdevice_t), c_int]
        lib.LIBMTP_Get_Storage.restype = c_int

        lib.LIBMTP_Get_Files_And_Folders.argtypes = [
            POINTER(LIBMTP_mtpdevice_t),
            c_uint32,
            c_uint32,
        ]
        lib.LIBMTP_Get_Files_And_Folders.restype = POINTER(LIBMTP_file_struct)

        lib.LIBMTP_destroy_file_t.argtypes = [POINTER(LIBMTP_file_struct)]
        lib.LIBMTP_destroy_file_t.restype = None

        lib.LIBMTP_Delete_Object.argtypes = [POINTER(LIBMTP_mtpdevice_t), c_uint32]
        lib.LIBMTP_Delete_Object.restype = c_int

        lib.LIBMTP_Send_File_From_File.argtypes = [
            POINTER(LIBMTP_mtpdevice_t),
            c_char_p,
            POINTER(LIBMTP_file_struct),
            LIBMTP_progressfunc_t,
            c_void_p
        ]
        lib.LIBMTP_Send_File_From_File.restype = c_int

        lib.LIBMTP_Create_Folder.argtypes = [
            POINTER(LIBMTP_mtpdevice_t),
            c_char_p,
            c_uint32,
            c_uint32
        ]
        lib.LIBMTP_Create_Folder.restype = c_uint32

        lib.LIBMTP_Dump_Errorstack.argtypes = [POINTER(LIBMTP_mtpdevice_t)]
        lib.LIBMTP_Dump_Errorstack.restype = None

        lib.LIBMTP_Clear_Errorstack.argtypes = [POINTER(LIBMTP_mtpdevice_t)]
        lib.LIBMTP_Clear_Errorstack.restype = None

    def _require_device(self) -> None:
        if not self.device:
            raise RuntimeError("No device connected")

    def _flush_errors(self) -> None:
        """Dump and clear the libmtp error stack after a failed call."""
        if self.device:
            self.lib.LIBMTP_Dump_Errorstack(self.device)
            self.lib.LIBMTP_Clear_Errorstack(self.device)

    def detect_devices(self) -> List[dict]:
        """
        Detect connected MTP devices.

        Returns:
            List of device information dictionaries (empty if none attached)
        """
        num_devices = c_int()
        raw_devices = POINTER(LIBMTP_raw_device_struct)()

        res = self.lib.LIBMTP_Detect_Raw_Devices(ctypes.byref(raw_devices), ctypes.byref(num_devices))
        if res == LIBMTP_ERROR_NO_DEVICE_ATTACHED:
            return []
        if res != LIBMTP_ERROR_NONE:
            logger.error(f"Error detecting MTP devices: {res}")
            raise RuntimeError(f"Failed to detect MTP devices: error code {res}")

        devices = []
        for i in range(num_devices.value):
            device = raw_devices[i]
            devices.append({
                "vendor_id": device.device_entry.vendor_id,
                "product_id": device.device_entry.product_id,
                "bus_location": device.bus_location,
                "device_num": device.devnum,
                "raw_device": device
            })

        return devices

    def find_device(self, vendor_id: int) -> dict:
        """
        Find the first attached device with the given USB vendor id.

        Args:
            vendor_id: USB vendor id to match

        Returns:
            Device information dictionary
        """
        devices = self.detect_devices()
        if not devices:
            raise RuntimeError("No device attached")

        for device in devices:
            if device["vendor_id"] == vendor_id:
                logger.debug(f"Matched device vendor_id={vendor_id}, product_id={device['product_id']}")
                return device

        raise RuntimeError(f"No Garmin device found (vendor id {vendor_id})")

    def open_device(self, device_info: dict) -> None:
        """
        Open connection to an MTP device.

        Args:
            device_info: Device information from detect_devices()
        """
        logger.debug("Opening raw device using LIBMTP_Open_Raw_Device_Uncached")
        raw_device = device_info["raw_device"]

        # Uncached: the library must be reloaded on every run anyway
        self.device = self.lib.LIBMTP_Open_Raw_Device_Uncached(ctypes.byref(raw_device))

        if not self.device:
            logger.error("Failed to open device - got NULL pointer")
            raise RuntimeError("Failed to open MTP device")

        device_addr = ctypes.cast(self.device, ctypes.c_void_p).value
        logger.debug(f"Device opened successfully at address: {device_addr:#x}")

    def get_storages(self) -> List[dict]:
        """
        Get available storage on the connected device.

        Returns:
            List of storage information dictionaries
        """
        self._require_device()

        rc = self.lib.LIBMTP_Get_Storage(self.device, 0)
        if rc != 0:
            self._flush_errors()
            raise RuntimeError(f"LIBMTP_Get_Storage failed (error {rc})")

        storages = []
        storage_ptr = self.device.contents.storage
        while bool(storage_ptr):
            s = storage_ptr.contents
            storages.append({
                "id": s.id,
                "desc": (s.storage_description or b"").decode(),
                "capacity": s.maximum_capacity,
                "free_space": s.free_space_in_bytes,
            })
            storage_ptr = s.next

        if not storages:
            raise RuntimeError("Device reported no storage (is it unlocked?)")
        return storages

    def list_folder(self, storage_id: int, parent_id: int = ROOT_FOLDER_ID) -> List[DeviceEntry]:
        """
        List the files and folders directly under a folder.

        Args:
            storage_id: Storage to list
            parent_id: Folder id, ROOT_FOLDER_ID for the storage root

        Returns:
            List of DeviceEntry
        """
        self._require_device()

        entries = []
        file_ptr = self.lib.LIBMTP_Get_Files_And_Folders(self.device, storage_id, parent_id)
        while file_ptr:
            file = file_ptr.contents
            entries.append(DeviceEntry(
                id=file.item_id,
                parent_id=file.parent_id,
                storage_id=file.storage_id,
                name=file.filename.decode("utf-8") if file.filename else "",
                filetype=file.filetype,
                size=file.filesize,
                modified=file.modificationdate,
            ))

            next_ptr = file.next
            self.lib.LIBMTP_destroy_file_t(file_ptr)
            file_ptr = next_ptr

        return entries

    def find_folder(self, storage_id: int, parent_id: int, name: str) -> Optional[DeviceEntry]:
        """
        Find a folder by exact name directly under a parent folder.

        Returns:
            DeviceEntry of the folder or None
        """
        for entry in self.list_folder(storage_id, parent_id):
            if entry.is_folder and entry.name == name:
                return entry
        return None

    def upload(
        self,
        source_path: Path,
        parent_id: int,
        storage_id: int,
        filename: Optional[str] = None,
        filetype: int = FILETYPE_UNKNOWN,
        modified: Optional[float] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> int:
        """
        Upload a file to the device.

        Args:
            source_path: Path to source file
            parent_id: Parent folder ID
            storage_id: Storage ID
            filename: Optional filename (uses source filename if None)
            filetype: libmtp filetype tag
            modified: Modification timestamp (uses source mtime if None)
            progress: Optional callback receiving (sent, total) byte counts

        Returns:
            ID of uploaded file
        """
        self._require_device()

        if not source_path.exists():
            raise FileNotFoundError(f"Source file not found: {source_path}")

        stat = source_path.stat()

        # Create file metadata
        file_struct = LIBMTP_file_struct()
        file_struct.parent_id = parent_id
        file_struct.storage_id = storage_id
        file_struct.filename = (filename or source_path.name).encode("utf-8")
        file_struct.filesize = stat.st_size
        file_struct.filetype = filetype
        file_struct.modificationdate = int(modified if modified is not None else stat.st_mtime)

        def _progress(sent, total, data):
            if progress is not None:
                progress(sent, total)
            # Non-zero would cancel the transfer
            return 0

        callback = LIBMTP_progressfunc_t(_progress)

        result = self.lib.LIBMTP_Send_File_From_File(
            self.device,
            str(source_path).encode("utf-8"),
            ctypes.byref(file_struct),
            callback,
            None
        )

        if result != 0:
            self._flush_errors()
            logger.error(f"Failed to upload {source_path} to parent_id {parent_id}")
            raise RuntimeError(f"Failed to upload file: {source_path}")

        return file_struct.item_id

    def mkdir(self, parent_id: int, folder_name: str, storage_id: int) -> int:
        """
        Create a directory on the device.

        Args:
            parent_id: Parent folder ID
            folder_name: Name for new folder
            storage_id: Storage ID

        Returns:
            ID of created folder
        """
        self._require_device()

        # libmtp may rewrite the name in place
        name_buffer = ctypes.create_string_buffer(folder_name.encode("utf-8"))
        result = self.lib.LIBMTP_Create_Folder(
            self.device,
            name_buffer,
            parent_id,
            storage_id
        )

        if result == 0:
            self._flush_errors()
            logger.error(f"Failed to create folder {folder_name} in parent_id {parent_id}")
            raise RuntimeError(f"Failed to create folder: {folder_name}")

        return result

    def delete(self, object_id: int) -> None:
        """
        Delete a file or an empty folder from the device.

        Args:
            object_id: ID of the object to delete
        """
        self._require_device()

        result = self.lib.LIBMTP_Delete_Object(self.device, object_id)
        if result != 0:
            self._flush_errors()
            raise RuntimeError(f"Failed to delete object: {object_id}")

    def close(self):
        """Close connection and release resources."""
        if self.device:
            self.lib.LIBMTP_Release_Device(self.device)
            self.device = None
