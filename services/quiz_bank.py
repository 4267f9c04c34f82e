"""Quiz question sources — the seeded cybersecurity bank and model generation.

``BankQuestionSource`` draws uniformly at random, with replacement, from the
fixed 50-question bank.  ``ModelQuestionSource`` asks the generation
orchestrator for a fresh question with the quiz instruction and falls back
to the bank whenever the model output cannot be parsed or every provider
fails.
"""

from __future__ import annotations

import logging
import random
from typing import Protocol, Sequence

from config.prompts.modes import build_mode_instruction
from errors.exceptions import AllProvidersExhausted, NoCredentialsConfigured
from models.generation import OperatingMode, QuizQuestion
from services.generation_client import GenerationRequest
from services.orchestrator import GenerationOrchestrator
from services.output_extractor import extract_quiz

logger = logging.getLogger(__name__)

# ── Seeded bank ───────────────────────────────────────────────

QUIZ_BANK: tuple[QuizQuestion, ...] = (
    QuizQuestion(
        question_text="What is the primary purpose of Multi-Factor Authentication (MFA)?",
        options=["Faster login", "Layered security", "Longer passwords", "Better UI"],
        correct_option_index=1,
        explanation="MFA adds layers of security beyond just a password.",
    ),
    QuizQuestion(
        question_text="What is 'Phishing'?",
        options=["Catching fish", "Stealing info via deceptive emails", "Speeding up PCs", "Hardware hacking"],
        correct_option_index=1,
        explanation="Phishing uses deceptive emails to steal sensitive info.",
    ),
    QuizQuestion(
        question_text="What does HTTPS stand for?",
        options=["Hypertext Transfer Protocol Secure", "High Tech Program System", "Home Transfer Private Site", "None of the above"],
        correct_option_index=0,
        explanation="The 'S' stands for Secure, indicating encrypted data transfer.",
    ),
    QuizQuestion(
        question_text="A 'Brute Force' attack targets what?",
        options=["The server cooling", "Passwords", "Screen brightness", "The Wi-Fi router"],
        correct_option_index=1,
        explanation="Brute force attempts every possible password combination.",
    ),
    QuizQuestion(
        question_text="What is a 'VPN' used for?",
        options=["Mining Bitcoin", "Encrypting internet traffic", "Editing videos", "Increasing RAM"],
        correct_option_index=1,
        explanation="A VPN creates a secure, encrypted tunnel for your data.",
    ),
    QuizQuestion(
        question_text="Which is a strong password?",
        options=["password123", "12345678", "Tr0ub4dor&3", "Admin"],
        correct_option_index=2,
        explanation="Strong passwords use mixed cases, numbers, and symbols.",
    ),
    QuizQuestion(
        question_text="What is Social Engineering?",
        options=["Building bridges", "Manipulating people for info", "Coding websites", "Designing cities"],
        correct_option_index=1,
        explanation="It relies on human psychology rather than technical hacks.",
    ),
    QuizQuestion(
        question_text="What is Malware?",
        options=["Good software", "Malicious software", "Expensive hardware", "A type of firewall"],
        correct_option_index=1,
        explanation="Malware is designed to damage or gain unauthorized access.",
    ),
    QuizQuestion(
        question_text="What is 'Ransomware'?",
        options=["Software that asks for help", "Software that encrypts files for money", "A free tool", "A virus scanner"],
        correct_option_index=1,
        explanation="Ransomware holds your data hostage until you pay.",
    ),
    QuizQuestion(
        question_text="What is a 'Firewall'?",
        options=["A physical wall", "Network security system", "A fast browser", "An anti-overheat tool"],
        correct_option_index=1,
        explanation="It monitors and controls incoming/outgoing network traffic.",
    ),
    QuizQuestion(
        question_text="What is a 'Zero-Day' vulnerability?",
        options=["A bug fixed today", "An unpatched software vulnerability", "A very old bug", "A marketing term"],
        correct_option_index=1,
        explanation="A vulnerability known to hackers but not yet patched by developers.",
    ),
    QuizQuestion(
        question_text="What does 'DDoS' stand for?",
        options=["Distributed Denial of Service", "Double Data on Server", "Digital Download of Software", "Direct Denial of Security"],
        correct_option_index=0,
        explanation="Overwhelming a target with traffic from many sources.",
    ),
    QuizQuestion(
        question_text="What is 'Shoulder Surfing'?",
        options=["Surfing the web", "Watching someone type their password", "A type of physical exercise", "Hacking via Bluetooth"],
        correct_option_index=1,
        explanation="Literally looking over someone's shoulder to steal credentials.",
    ),
    QuizQuestion(
        question_text="Why should you update software?",
        options=["To get new icons", "To patch security holes", "To use more disk space", "No reason"],
        correct_option_index=1,
        explanation="Updates often contain critical security patches.",
    ),
    QuizQuestion(
        question_text="What is 'Two-Factor Authentication' (2FA)?",
        options=["Two passwords", "Password + one more factor", "Two people logging in", "Logging in twice"],
        correct_option_index=1,
        explanation="Requiring two distinct forms of identification.",
    ),
    QuizQuestion(
        question_text="What is a 'Trojan Horse'?",
        options=["A wooden toy", "Malware disguised as legitimate software", "A fast network cable", "A hardware firewall"],
        correct_option_index=1,
        explanation="It tricks users into running it by looking safe.",
    ),
    QuizQuestion(
        question_text="What is 'Smishing'?",
        options=["Phishing via SMS", "Phishing via Smells", "Hacking a Smart TV", "Phishing via Email"],
        correct_option_index=0,
        explanation="Phishing attacks conducted through text messages.",
    ),
    QuizQuestion(
        question_text="What is 'Vishing'?",
        options=["Video Phishing", "Voice Phishing", "Virtual Phishing", "None"],
        correct_option_index=1,
        explanation="Phishing attacks conducted via phone calls.",
    ),
    QuizQuestion(
        question_text="What is an 'Insider Threat'?",
        options=["A threat from the internet", "A threat from someone within the org", "A virus in the CPU", "A broken door lock"],
        correct_option_index=1,
        explanation="Employees or partners who misuse their access.",
    ),
    QuizQuestion(
        question_text="What is 'Encryption'?",
        options=["Deleting data", "Converting data to code to prevent access", "Copying data", "Compressing files"],
        correct_option_index=1,
        explanation="Scrambling data so only authorized parties can read it.",
    ),
    QuizQuestion(
        question_text="What is a 'Public Wi-Fi' risk?",
        options=["Faster speeds", "Data interception", "Battery drain", "Better signal"],
        correct_option_index=1,
        explanation="Hackers can easily monitor traffic on open networks.",
    ),
    QuizQuestion(
        question_text="What is 'Juice Jacking'?",
        options=["Hacking a juicer", "Hacking via USB charging stations", "Stealing power", "None"],
        correct_option_index=1,
        explanation="Cyberattack through a public charging port.",
    ),
    QuizQuestion(
        question_text="What is 'Baiting' in social engineering?",
        options=["Fishing with worms", "Leaving a malware-infected USB for someone", "Asking for a date", "Buying ads"],
        correct_option_index=1,
        explanation="Luring victims with a physical or digital 'bait'.",
    ),
    QuizQuestion(
        question_text="What does 'OWASP' stand for?",
        options=["Open Web Application Security Project", "Official Web Security Program", "Online Web Safety Program", "None"],
        correct_option_index=0,
        explanation="A nonprofit foundation that works to improve software security.",
    ),
    QuizQuestion(
        question_text="What is a 'Botnet'?",
        options=["A robot network", "A network of compromised computers", "A type of internet speed", "A chat room"],
        correct_option_index=1,
        explanation="A collection of internet-connected devices infected with malware.",
    ),
    QuizQuestion(
        question_text="What is 'Spear Phishing'?",
        options=["Phishing in the ocean", "Targeted phishing for a specific person", "Random phishing", "Fast phishing"],
        correct_option_index=1,
        explanation="A personalized attack aimed at a specific individual or org.",
    ),
    QuizQuestion(
        question_text="What is 'SQL Injection'?",
        options=["Injecting code into a database query", "A type of physical attack", "Optimizing a database", "Hacking a website CSS"],
        correct_option_index=0,
        explanation="Inserting malicious SQL code to manipulate a database.",
    ),
    QuizQuestion(
        question_text="What is a 'Keylogger'?",
        options=["A person who makes keys", "Software that records keystrokes", "A type of heavy keyboard", "None"],
        correct_option_index=1,
        explanation="Malware that records every letter you type.",
    ),
    QuizQuestion(
        question_text="What is 'Data Breach'?",
        options=["A new data release", "Unauthorized access to private data", "Data cleanup", "Data backup"],
        correct_option_index=1,
        explanation="An incident where information is accessed without authorization.",
    ),
    QuizQuestion(
        question_text="What is 'Penetration Testing'?",
        options=["Testing a pen's ink", "Authorized simulated attack", "Hacking a bank for real", "None"],
        correct_option_index=1,
        explanation="Testing a system's security by simulating a real attack.",
    ),
    QuizQuestion(
        question_text="What is 'Patch Management'?",
        options=["Fixing clothes", "Updating software regularly", "Garden care", "None"],
        correct_option_index=1,
        explanation="The process of managing a network of software updates.",
    ),
    QuizQuestion(
        question_text="What is 'Identity Theft'?",
        options=["Losing your ID card", "Stealing someone's personal info to commit fraud", "Changing your name", "None"],
        correct_option_index=1,
        explanation="Using someone else's identity for financial gain.",
    ),
    QuizQuestion(
        question_text="What is 'Whaling'?",
        options=["Big phishing targeted at executives", "Hunting whales", "Phishing a whole town", "None"],
        correct_option_index=0,
        explanation="Phishing attacks aimed specifically at senior executives.",
    ),
    QuizQuestion(
        question_text="What is 'Pretexting'?",
        options=["Sending a text before", "Creating a fake scenario to steal info", "Reading a book", "None"],
        correct_option_index=1,
        explanation="Fabricating a story to gain the victim's trust.",
    ),
    QuizQuestion(
        question_text="What is 'Cryptojacking'?",
        options=["Hacking Bitcoin wallets", "Using a PC to mine crypto without permission", "Buying crypto", "None"],
        correct_option_index=1,
        explanation="Unauthorized use of a person's computer to mine cryptocurrency.",
    ),
    QuizQuestion(
        question_text="What is a 'Man-in-the-Middle' (MitM) attack?",
        options=["A person standing between two PCs", "Intercepting communication between two parties", "A referee", "None"],
        correct_option_index=1,
        explanation="The attacker secretly relays and alters the communication.",
    ),
    QuizQuestion(
        question_text="What is 'Dark Web'?",
        options=["A web with no colors", "Hidden part of the internet used for illicit acts", "A website with dark mode", "None"],
        correct_option_index=1,
        explanation="Part of the deep web that is intentionally hidden.",
    ),
    QuizQuestion(
        question_text="What is 'Principle of Least Privilege'?",
        options=["Giving everyone admin access", "Giving users only the access they need", "Giving no one access", "None"],
        correct_option_index=1,
        explanation="A concept of limiting access rights for users to the bare minimum.",
    ),
    QuizQuestion(
        question_text="What is 'Endpoint Security'?",
        options=["Securing the finish line", "Securing devices like laptops and phones", "A type of wall", "None"],
        correct_option_index=1,
        explanation="Securing the devices that connect to a network.",
    ),
    QuizQuestion(
        question_text="What is 'Biometric Authentication'?",
        options=["Using a ruler", "Using physical traits like fingerprints", "Using two passwords", "None"],
        correct_option_index=1,
        explanation="Using unique physical characteristics to verify identity.",
    ),
    QuizQuestion(
        question_text="What is 'Tailgating'?",
        options=["Following someone into a secure area without access", "A type of car party", "Driving too close to a car", "None"],
        correct_option_index=0,
        explanation="Physical security breach where someone follows an authorized person.",
    ),
    QuizQuestion(
        question_text="What is 'Air Gapping'?",
        options=["Putting a fan near a PC", "Isolating a computer from all networks", "Clearing the air", "None"],
        correct_option_index=1,
        explanation="Disconnecting a computer physically from any network for security.",
    ),
    QuizQuestion(
        question_text="What is 'Hashing'?",
        options=["Cooking potatoes", "Creating a unique fixed-length string from data", "Encrypting a file", "None"],
        correct_option_index=1,
        explanation="One-way conversion of data into a unique string.",
    ),
    QuizQuestion(
        question_text="What is 'CAPTCHA' used for?",
        options=["Displaying ads", "Distinguishing humans from bots", "Speeding up forms", "None"],
        correct_option_index=1,
        explanation="A challenge-response test to ensure the user is human.",
    ),
    QuizQuestion(
        question_text="What is 'Information Leakage'?",
        options=["A broken pipe", "Unintentional disclosure of private info", "Sharing a secret", "None"],
        correct_option_index=1,
        explanation="When sensitive info is exposed to unauthorized parties.",
    ),
    QuizQuestion(
        question_text="What is 'Sandboxing'?",
        options=["Playing in the sand", "Running code in an isolated environment", "Cleaning a PC", "None"],
        correct_option_index=1,
        explanation="Testing untrusted code in a safe, isolated container.",
    ),
    QuizQuestion(
        question_text="What is 'Rootkit'?",
        options=["A tool for gardening", "Malware that grants high-level access while hiding", "A fast CPU", "None"],
        correct_option_index=1,
        explanation="Malware designed to hide its presence and maintain admin access.",
    ),
    QuizQuestion(
        question_text="What is 'Social Media Privacy'?",
        options=["Deleting your account", "Controlling who sees your personal info online", "Adding many friends", "None"],
        correct_option_index=1,
        explanation="Managing settings to protect your personal information on social platforms.",
    ),
    QuizQuestion(
        question_text="What is 'Security Awareness Training'?",
        options=["Learning to hack", "Educating users on cyber threats and safe habits", "Reading news", "None"],
        correct_option_index=1,
        explanation="Training employees to recognize and avoid security risks.",
    ),
    QuizQuestion(
        question_text="What is 'Data Privacy'?",
        options=["Hiding your data", "Proper handling and protection of sensitive personal data", "Deleting old files", "None"],
        correct_option_index=1,
        explanation="The right of an individual to have control over how their personal info is collected and used.",
    ),
)


# ── Sources ───────────────────────────────────────────────────


class QuestionSource(Protocol):
    async def next_question(self, user_level: str, language: str) -> QuizQuestion | None:
        """Return the next question, or ``None`` when none is available."""
        ...


class BankQuestionSource:
    """Uniform random draw, with replacement, from a fixed question bank."""

    def __init__(
        self,
        questions: Sequence[QuizQuestion] = QUIZ_BANK,
        rng: random.Random | None = None,
    ):
        self._questions = tuple(questions)
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._questions)

    async def next_question(self, user_level: str = "", language: str = "en") -> QuizQuestion | None:
        if not self._questions:
            return None
        return self._rng.choice(self._questions)


class ModelQuestionSource:
    """Generate questions with the model; the bank covers every failure."""

    def __init__(self, orchestrator: GenerationOrchestrator, fallback: QuestionSource):
        self._orchestrator = orchestrator
        self._fallback = fallback

    async def next_question(self, user_level: str, language: str) -> QuizQuestion | None:
        request = GenerationRequest(
            system_instruction=build_mode_instruction(user_level, language, OperatingMode.QUIZ),
            prompt="Give me the next cybersecurity quiz question.",
            response_format="json",
        )
        try:
            outcome = await self._orchestrator.generate(request)
        except (AllProvidersExhausted, NoCredentialsConfigured) as exc:
            logger.warning("Model quiz generation unavailable, using bank: %s", exc)
            return await self._fallback.next_question(user_level, language)

        extraction = extract_quiz(outcome.text)
        if isinstance(extraction.result, QuizQuestion):
            return extraction.result
        logger.warning("Model quiz output unparseable, using bank")
        return await self._fallback.next_question(user_level, language)
