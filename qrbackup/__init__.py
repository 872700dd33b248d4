"""qrbackup -- paper backups of arbitrary files as sequences of QR codes.

A file is split into self-describing frames sized to fit one QR symbol
each. Every frame carries the file name, the CRC-32 of the whole file,
the total number of parts and its own index, so symbols can be scanned
back in any order, from any mix of photographed pages and transcribed
code lists, and reassembled into the original file with an integrity
check.
"""

__version__ = "1.0.0"
