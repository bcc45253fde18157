"""
Chain Tutor - Lesson Topics
The topic context a conversation is anchored to.

A topic is a label plus a short description. The conversation prompt
builds on it, the result interpreter frames capability results with it,
and a few fallback sentences change with its id.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class TopicContext:
    """
    One lesson topic.

    Attributes:
        id: Short identifier ("lending", "dex", ...)
        name: Display label
        description: One or two sentences shown to the model as context
        focus: What the tutor should concentrate on
        guidance: Teaching bullet points for the conversation prompt
        suggested_questions: Starter questions offered to the learner
    """
    id: str
    name: str
    description: str
    focus: str = ""
    guidance: Tuple[str, ...] = field(default_factory=tuple)
    suggested_questions: Tuple[str, ...] = field(default_factory=tuple)

    def context_line(self) -> str:
        return f"We are discussing {self.name}. {self.description}"


TOPICS: Dict[str, TopicContext] = {}


def _register(topic: TopicContext) -> TopicContext:
    TOPICS[topic.id] = topic
    return topic


DEFAULT_TOPIC = _register(TopicContext(
    id="intro",
    name="Introduction to DeFi",
    description=(
        "DeFi (Decentralized Finance) is an ecosystem of financial applications built on "
        "blockchain networks. It aims to recreate traditional financial systems in a "
        "decentralized way, removing intermediaries."
    ),
    focus=(
        "Explain concepts in simple terms, avoiding jargon when possible. Help the learner "
        "understand the fundamental principles, benefits, and risks of DeFi."
    ),
    guidance=(
        "Use analogies to traditional finance when helpful",
        "Highlight the key innovations of DeFi (permissionless, transparent, non-custodial)",
        "Be balanced in discussing both benefits and risks",
        "Provide examples of popular DeFi protocols when relevant",
    ),
    suggested_questions=(
        "What are the main benefits of DeFi?",
        "How is DeFi different from traditional finance?",
        "What are the risks associated with DeFi?",
    ),
))

_register(TopicContext(
    id="lending",
    name="Lending & Borrowing",
    description=(
        "Lending and borrowing platforms allow users to lend their cryptocurrencies and earn "
        "interest or borrow assets by providing collateral."
    ),
    focus=(
        "Explain how users lend assets to earn interest or borrow against collateral, "
        "including overcollateralization, liquidation risk and interest rate models."
    ),
    guidance=(
        "Compare to traditional lending when helpful",
        "Explain the risks of liquidation and how to avoid it",
        "Discuss popular lending platforms like Aave and Compound",
        "Explain variable vs. stable interest rates",
    ),
    suggested_questions=(
        "How do interest rates work in DeFi lending?",
        "What happens if my collateral value drops?",
        "What is a liquidation in DeFi lending?",
    ),
))

_register(TopicContext(
    id="dex",
    name="Decentralized Exchanges",
    description=(
        "Decentralized exchanges (DEXs) allow users to trade cryptocurrencies directly from "
        "their wallets without the need for an intermediary."
    ),
    focus=(
        "Explain how tokens are swapped without intermediaries, how automated market makers "
        "work, and concepts like liquidity pools, impermanent loss and slippage."
    ),
    guidance=(
        "Compare to centralized exchanges when helpful",
        "Explain how liquidity pools enable trading",
        "Discuss the risks of impermanent loss for liquidity providers",
        "Explain how to minimize slippage when trading",
    ),
    suggested_questions=(
        "What is impermanent loss?",
        "How do liquidity pools work?",
        "What is slippage in trading?",
    ),
))

_register(TopicContext(
    id="staking",
    name="Staking & Yield Farming",
    description=(
        "Staking involves locking up cryptocurrencies to support network operations and earn "
        "rewards. Yield farming involves strategically providing liquidity to maximize returns."
    ),
    focus=(
        "Explain how users earn passive income by staking assets or providing liquidity: "
        "Proof of Stake, liquid staking, yield farming strategies and APY/APR."
    ),
    guidance=(
        "Differentiate between staking for consensus and staking for yield",
        "Explain the risks and rewards of different strategies",
        "Explain how rewards are calculated and distributed",
    ),
    suggested_questions=(
        "What is the difference between staking and yield farming?",
        "How are staking rewards calculated?",
        "What is liquid staking?",
    ),
))

_register(TopicContext(
    id="nft",
    name="NFTs & Marketplaces",
    description=(
        "Non-Fungible Tokens (NFTs) represent ownership of unique items. NFT marketplaces "
        "facilitate buying, selling, and trading of these digital assets."
    ),
    guidance=(
        "Explain the technical aspects of NFTs in simple terms",
        "Discuss how royalties work for creators",
        "Discuss popular NFT marketplaces and their features",
    ),
    suggested_questions=(
        "How do NFT royalties work?",
        "What makes an NFT valuable?",
    ),
))

_register(TopicContext(
    id="dao",
    name="DAOs & Governance",
    description=(
        "Decentralized Autonomous Organizations (DAOs) are community-led entities with no "
        "central authority. Governance tokens give holders voting rights in these organizations."
    ),
    guidance=(
        "Compare DAOs to traditional organizations",
        "Explain how proposals and voting work",
        "Discuss different governance models (token-weighted, quadratic, etc.)",
    ),
    suggested_questions=(
        "How does voting work in a DAO?",
        "What is a governance token?",
    ),
))

_register(TopicContext(
    id="wallets",
    name="Wallets & Security",
    description=(
        "Cryptocurrency wallets store private keys needed to access and manage your digital "
        "assets. Security practices are critical to protect your holdings."
    ),
    focus=(
        "Explain how wallets work, the different types available, and how users can secure "
        "their assets and protect themselves from scams."
    ),
    guidance=(
        "Explain the difference between custodial and non-custodial wallets",
        "Emphasize the importance of seed phrase security",
        "Discuss common scams and how to avoid them",
    ),
    suggested_questions=(
        "What is a seed phrase and how do I protect it?",
        "How do I recognize and avoid scams?",
    ),
))

_register(TopicContext(
    id="defi2",
    name="DeFi 2.0 & Beyond",
    description=(
        "DeFi 2.0 refers to the next generation of DeFi protocols that address limitations of "
        "the first wave, focusing on sustainability, capital efficiency, and risk management."
    ),
))

_register(TopicContext(
    id="flock",
    name="Flock.io & AI for Web3",
    description=(
        "Flock.io combines AI with Web3 technologies, offering specialized models trained on "
        "blockchain and crypto data to help developers build better Web3 applications."
    ),
    guidance=(
        "Describe how AI models trained on blockchain data differ from general-purpose models",
        "Explain practical use cases for AI in Web3 development",
    ),
))

_register(TopicContext(
    id="educhain",
    name="EduChain: Arbitrum L3",
    description=(
        "EduChain is an educational Arbitrum Layer 3 blockchain designed for learning and "
        "experimenting with blockchain technology in a controlled environment."
    ),
    guidance=(
        "Explain how a Layer 3 settles to its parent chain (Arbitrum Sepolia, chain id 421614)",
        "Highlight the benefits of a dedicated educational chain versus public testnets",
    ),
))


def get_topic(topic_id: Optional[str]) -> Optional[TopicContext]:
    """Look up a built-in topic by id."""
    if not topic_id:
        return None
    return TOPICS.get(topic_id.strip().lower())


def list_topics() -> List[TopicContext]:
    return list(TOPICS.values())
