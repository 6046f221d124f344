"""
constants.py
============
X-Bogus protocol constants.

All values were read off the web SDK (webmssdk) and confirmed against captured
traffic; a protocol revision changes them together, so nothing else in the
package hardcodes them.
"""

# ── custom base64 alphabet (replaces A-Za-z0-9+/)
SHIFT_ALPHABET = "Dkdpgh4ZKsQB80/Mfvw36XI1R25-WUAlEi7NLboqYTOPuzmFjJnryx9HVGcaStCe"

# decode() returns this for symbols outside the alphabet
PAD_VALUE = 64

# ── frame
MAGIC_NUMBER = 536919696                 # 0x2000BE90, written little-endian
FLAG_BYTES = bytes([0, 1, 14, 0])
HASH_TAIL_CHARS = 4                      # last 4 hex chars = 2 raw bytes per digest
FRAME_LENGTH = 23                        # 22 data bytes + 1 xor checksum

# ── rc4 keys
RC4_UA_KEY = bytes([0, 1, 14])
RC4_FINAL_KEY = bytes([255])

# ── permutation: even indices first, then odd, 0..18 only
SELECT_INDICES = (0, 2, 4, 6, 8, 10, 12, 14, 16, 18, 1, 3, 5, 7, 9, 11, 13, 15, 17)

# ── token
TOKEN_PREFIX = bytes([2, 255])
QUERY_PARAM = "X-Bogus"

# desktop Chrome, matches the browser_* search params
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
