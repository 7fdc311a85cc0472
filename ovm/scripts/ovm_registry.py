"""Function signatures and event declarations for the OVM factory and instances."""

from __future__ import annotations

FACTORY_CREATE_EVENT = (
    "CreateObolValidatorManager(address indexed ovm, address indexed owner, "
    "address beneficiary, address rewardRecipient, uint64 principalThreshold)"
)
ROLES_UPDATED_EVENT = "RolesUpdated(address indexed user, uint256 indexed roles)"

# Factory write
CREATE_OVM_SIG = "createObolValidatorManager(address,address,address,uint64)"

# OVM reads: (signature, output type)
OWNER_READ = ("owner()", "address")
PRINCIPAL_RECIPIENT_READ = ("principalRecipient()", "address")
REWARD_RECIPIENT_READ = ("rewardRecipient()", "address")
PRINCIPAL_THRESHOLD_READ = ("principalThreshold()", "uint64")
FUNDS_PENDING_WITHDRAWAL_READ = ("fundsPendingWithdrawal()", "uint128")
AMOUNT_OF_PRINCIPAL_STAKE_READ = ("amountOfPrincipalStake()", "uint256")
VERSION_READ = ("version()", "string")
ROLES_OF_READ = ("rolesOf(address)", "uint256")

# OVM writes
GRANT_ROLES_SIG = "grantRoles(address,uint256)"
REVOKE_ROLES_SIG = "revokeRoles(address,uint256)"
SET_BENEFICIARY_SIG = "setBeneficiary(address)"
SET_REWARD_RECIPIENT_SIG = "setRewardRecipient(address)"
DISTRIBUTE_FUNDS_SIG = "distributeFunds()"
WITHDRAW_SIG = "withdraw(bytes[],uint64[],uint256,address)"

DEFAULT_PRINCIPAL_THRESHOLD_GWEI = 16 * 10**9
VALIDATOR_PUBKEY_BYTES = 48
