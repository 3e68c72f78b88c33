"""Redis Lua scripts for the key-value store.

These scripts provide atomic operations to prevent TOCTOU race conditions
when several gateway instances update the same record.
"""

# Atomic compare-and-set.
# KEYS[1]  record key
# ARGV[1]  expected raw value ("" when ARGV[2] == "0")
# ARGV[2]  "1" if a current value is expected, "0" if the key must be absent
# ARGV[3]  new raw value
# ARGV[4]  TTL in seconds, 0 for no expiry
# Returns 1 when the value was written, 0 when the current value differed.
COMPARE_AND_SET_SCRIPT = """
    local current = redis.call('GET', KEYS[1])

    if ARGV[2] == '1' then
        if current ~= ARGV[1] then
            return 0
        end
    elseif current then
        return 0
    end

    local ttl = tonumber(ARGV[4])
    if ttl and ttl > 0 then
        redis.call('SET', KEYS[1], ARGV[3], 'EX', ttl)
    else
        redis.call('SET', KEYS[1], ARGV[3])
    end
    return 1
"""
