"""Pure domain core: enums, DTOs, policy, stock fold and business rules."""
