"""SkillChain backend: pay-per-test skill assessments on Solana."""
