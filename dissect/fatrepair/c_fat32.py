from dissect import cstruct

# https://download.microsoft.com/download/1/6/1/161ba512-40e2-4cc9-843a-923143f3456c/fatgen103.doc
c_fat32_def = """
#define ATTR_READ_ONLY 0x01
#define ATTR_HIDDEN    0x02
#define ATTR_SYSTEM    0x04
#define ATTR_VOLUME_ID 0x08
#define ATTR_DIRECTORY 0x10
#define ATTR_ARCHIVE   0x20
#define ATTR_LONG_NAME (ATTR_READ_ONLY | ATTR_HIDDEN | ATTR_SYSTEM | ATTR_VOLUME_ID)

struct BootSector {
    uint8_t  BS_jmpBoot[3];    /* jump instruction to boot code */
    uint8_t  BS_OEMName[8];    /* "MSWIN4.1" */
    uint16_t BPB_BytsPerSec;   /* bytes per sector (512, 1k, 2k, 4k) */
    uint8_t  BPB_SecPerClus;   /* sectors per cluster (2^n, 0<=n<=7) */
    uint16_t BPB_RsvdSecCnt;   /* number of reserved sectors */
    uint8_t  BPB_NumFATs;      /* count of FATs on the volume (usually 2) */
    uint16_t BPB_RootEntCnt;   /* count of root directory entries (0 if FAT32) */
    uint16_t BPB_TotSec16;     /* total count of sectors (0 if FAT32) */
    uint8_t  BPB_Media;        /* media type, usally 0xf8 */
    uint16_t BPB_FATSz16;      /* sectors occupied by one fat (0 if FAT32) */
    uint16_t BPB_SecPerTrk;    /* sectors per track for Int 0x13 */
    uint16_t BPB_NumHeads;     /* numbers of heads for Int 0x13 */
    uint32_t BPB_HiddSec;      /* count of sectors preceding the partition */
    uint32_t BPB_TotSec32;     /* total count of all sectors of the volume */

    uint32_t BPB_FATSz32;      /* sectors occupied by one fat (FAT32) */
    uint16_t BPB_ExtFlags;     /* FAT mirrored? */
    uint16_t BPB_FSVer;        /* version number of FAT filesystem type */
    uint32_t BPB_RootClus;     /* cluster number of first cluster of root dir */
    uint16_t BPB_FSInfo;       /* sector number of FSINFO (usually 1) */
    uint16_t BPB_BkBootSec;    /* sector number of copy of boot sector */
    uint8_t  BPB_Reserved[12]; /* reserved for future use */

    uint8_t  BS_DrvNum;        /* Int 0x13 drive number, eg. 0x80 */
    uint8_t  BS_Reserved1;     /* reserved for WinNT (usually 0) */
    uint8_t  BS_BootSig;       /* extended boot signature (0x29) */
    uint32_t BS_VolID;         /* volume serial number (date + time) */
    uint8_t  BS_VolLab[11];    /* volume label as stored in the root directory */
    uint8_t  BS_FilSysType[8]; /* informational! */
    uint8_t  BS_BootCode32[420];
    uint8_t  BS_BootSign[2];   /* 0x55 0xAA */
};

struct Dirent {
    uint8_t  DIR_Name[11];
    uint8_t  DIR_Attr;
    uint8_t  DIR_NTRes;
    uint8_t  DIR_CrtTimeTenth;
    uint16_t DIR_CrtTime;
    uint16_t DIR_CrtDate;
    uint16_t DIR_LstAccDate;
    uint16_t DIR_FstClusHI;
    uint16_t DIR_WrtTime;
    uint16_t DIR_WrtDate;
    uint16_t DIR_FstClusLO;
    uint32_t DIR_FileSize;
};

struct Ldirent {
    uint8_t  LDIR_Ord;
    uint8_t  LDIR_Name1[10];
    uint8_t  LDIR_Attr;
    uint8_t  LDIR_Type;
    uint8_t  LDIR_Chksum;
    uint8_t  LDIR_Name2[12];
    uint16_t LDIR_FstClusLO;
    uint8_t  LDIR_Name3[4];
};
"""  # noqa: E501

c_fat32 = cstruct.cstruct()
c_fat32.load(c_fat32_def)

SECTOR_SIZE = 512
BOOT_SECTOR_SIZE = len(c_fat32.BootSector)
DIRENT_SIZE = len(c_fat32.Dirent)

# Conventional location of the backup boot sector (BPB_BkBootSec)
BACKUP_BOOT_SECTOR = 6

JMP_SHORT = 0xEB
JMP_NEAR = 0xE9
NOP = 0x90
BOOT_SIGNATURE = (0x55, 0xAA)

VALID_BPB_BYTES_PER_SECTOR = {512, 1024, 2048, 4096}
VALID_BPB_SECTORS_PER_CLUSTER = {1, 2, 4, 8, 16, 32, 64, 128}
VALID_BPB_NUM_FATS = {1, 2}
VALID_BPB_MEDIA = {0xF0, 0xF8, 0xF9, 0xFA, 0xFB, 0xFC, 0xFD, 0xFE, 0xFF}
VALID_BPB_DRIVE_NUMBERS = {0x00, 0x80}

VALID_DIR_ATTRIBUTES = {
    c_fat32.ATTR_READ_ONLY,
    c_fat32.ATTR_HIDDEN,
    c_fat32.ATTR_SYSTEM,
    c_fat32.ATTR_VOLUME_ID,
    c_fat32.ATTR_DIRECTORY,
    c_fat32.ATTR_ARCHIVE,
    c_fat32.ATTR_LONG_NAME,
}

DIR_NAME_SIZE = 11
DIR_NTRES_OFFSET = 12
LDIR_FSTCLUSLO_OFFSET = 26

DELETED_ENTRY = 0xE5

# Control bytes (except 0x05), space, "*+,./:;<=>?[\]|, and lowercase letters
ILLEGAL_NAME_BYTES = frozenset(
    [*range(0x00, 0x05), *range(0x06, 0x1A), 0x20, 0x22, *range(0x2A, 0x2D), 0x2E, 0x2F]
    + [*range(0x3A, 0x40), *range(0x5B, 0x5E), *range(0x61, 0x7B), 0x7C]
)

# ASCII "0"
FILLER_BYTE = 0x30
